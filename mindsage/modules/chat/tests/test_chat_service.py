"""Tests for ChatService — session creation, listing and history reads."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mindsage.database.base import Base
from mindsage.exceptions import (
    InvalidReferenceException,
    PersistenceFailureException,
    SessionNotFoundException,
)
from mindsage.modules.chat.chat_service import ChatService
from mindsage.modules.chat.session_store import SessionStore
from mindsage.modules.telemetry.session_events import EVENT_SESSION_CREATED

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def failing_db():
    db = AsyncMock()
    db.execute.side_effect = SQLAlchemyError("connection refused")
    return db


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_create_emits_created_event(self, db):
        telemetry = MagicMock()

        session = await ChatService(db, telemetry=telemetry).create_session("user-1")

        telemetry.emit.assert_called_once()
        event_name, data = telemetry.emit.call_args.args
        assert event_name == EVENT_SESSION_CREATED
        assert data["sessionId"] == session.external_id
        assert data["ownerId"] == "user-1"


class TestListSessions:
    @pytest.mark.asyncio
    async def test_summary_previews_last_message(self, db):
        store = SessionStore(db)
        session = await store.create(owner_id="user-1")
        await store.append_turn(
            session,
            {"role": "user", "content": "hi", "timestamp": "2026-03-01T10:00:00+00:00"},
            {"role": "assistant", "content": "y" * 150, "timestamp": "2026-03-01T10:00:01+00:00"},
        )

        summaries = await ChatService(db).list_sessions("user-1")

        assert len(summaries) == 1
        assert summaries[0].message_count == 2
        assert summaries[0].last_message.role == "assistant"
        assert summaries[0].last_message.content == "y" * 100 + "..."

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_empty_list(self, failing_db):
        assert await ChatService(failing_db).list_sessions("user-1") == []


class TestGetHistory:
    @pytest.mark.asyncio
    async def test_unknown_reference_is_empty(self, db):
        assert await ChatService(db).get_history(str(uuid.uuid4())) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ref", ["", "null", "undefined"])
    async def test_unusable_reference_is_rejected(self, db, ref):
        with pytest.raises(InvalidReferenceException):
            await ChatService(db).get_history(ref)

    @pytest.mark.asyncio
    async def test_store_failure_is_not_hidden(self, failing_db):
        with pytest.raises(PersistenceFailureException):
            await ChatService(failing_db).get_history(str(uuid.uuid4()))


class TestGetSession:
    @pytest.mark.asyncio
    async def test_unknown_reference_is_not_found(self, db):
        with pytest.raises(SessionNotFoundException):
            await ChatService(db).get_session("a" * 24)

    @pytest.mark.asyncio
    async def test_detail_reports_lookup_scheme(self, db):
        session = await SessionStore(db).create(owner_id="user-1")

        detail = await ChatService(db).get_session(session.id)

        assert detail.external_id == session.external_id
        assert detail.found_by == "internal_id"
        assert detail.messages == []
