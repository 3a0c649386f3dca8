"""Session store — persistence of chat sessions and their message documents."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from mindsage.exceptions import PersistenceFailureException, TurnConflictException
from mindsage.models.chat_session import ChatSession
from mindsage.models.enums import SessionStatus
from mindsage.modules.chat.constants import DEFAULT_SESSION_TITLE, LIST_SESSIONS_LIMIT

logger = logging.getLogger(__name__)

_STORE_ERRORS = (SQLAlchemyError, TimeoutError, OSError)


class SessionStore:
    """CRUD for chat sessions.

    Every store error is converted into ``PersistenceFailureException``;
    callers never see driver exceptions.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, owner_id: str, title: str | None = None) -> ChatSession:
        """Create an empty active session with a fresh external id."""
        now = datetime.now(UTC)
        session = ChatSession(
            external_id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=title or DEFAULT_SESSION_TITLE,
            status=SessionStatus.ACTIVE,
            messages=[],
            started_at=now,
            last_activity_at=now,
            version=0,
        )
        try:
            self.db.add(session)
            await self.db.commit()
        except _STORE_ERRORS as exc:
            await self._rollback()
            logger.error("Failed to create session for owner %s: %s", owner_id, exc)
            raise PersistenceFailureException("Could not create the chat session") from exc

        logger.info(
            "Created chat session %s (external %s) for owner %s",
            session.id,
            session.external_id,
            owner_id,
        )
        return session

    async def find_by_internal_id(self, internal_id: str) -> ChatSession | None:
        return await self._find_one(select(ChatSession).where(ChatSession.id == internal_id))

    async def find_by_external_id(self, external_id: str) -> ChatSession | None:
        return await self._find_one(
            select(ChatSession).where(ChatSession.external_id == external_id)
        )

    async def reload(self, session: ChatSession) -> ChatSession:
        """Re-read a session so its messages and version are current."""
        try:
            await self.db.refresh(session)
        except _STORE_ERRORS as exc:
            raise PersistenceFailureException("The session store is unavailable") from exc
        return session

    async def list_by_owner(
        self, owner_id: str, limit: int = LIST_SESSIONS_LIMIT
    ) -> list[ChatSession]:
        """List an owner's sessions, most recently started first."""
        try:
            result = await self.db.execute(
                select(ChatSession)
                .where(ChatSession.owner_id == owner_id)
                .order_by(ChatSession.started_at.desc())
                .limit(limit)
            )
        except _STORE_ERRORS as exc:
            raise PersistenceFailureException("Could not list chat sessions") from exc
        return list(result.scalars().all())

    async def append_turn(
        self,
        session: ChatSession,
        user_message: dict,
        assistant_message: dict,
        title: str | None = None,
    ) -> ChatSession:
        """Append a user/assistant pair in a single write.

        The update only applies while the stored ``version`` still equals the
        version that was read, so a concurrent turn on the same session cannot
        be overwritten.
        """
        expected_version = session.version
        messages = list(session.messages or []) + [user_message, assistant_message]
        values: dict = {
            "messages": messages,
            "last_activity_at": datetime.now(UTC),
            "version": expected_version + 1,
        }
        if title is not None:
            values["title"] = title

        try:
            result = await self.db.execute(
                update(ChatSession)
                .where(
                    ChatSession.id == session.id,
                    ChatSession.version == expected_version,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._rollback()
                raise TurnConflictException(
                    "Another message was saved to this session first; resubmit the message"
                )
            await self.db.commit()
        except _STORE_ERRORS as exc:
            await self._rollback()
            logger.error("Failed to persist turn for session %s: %s", session.id, exc)
            raise PersistenceFailureException("The message could not be saved; nothing was stored") from exc

        try:
            await self.db.refresh(session)
        except _STORE_ERRORS as exc:
            logger.warning("Turn saved but session %s could not be reloaded: %s", session.id, exc)
            for key, value in values.items():
                set_committed_value(session, key, value)
        return session

    async def _find_one(self, statement) -> ChatSession | None:
        try:
            result = await self.db.execute(statement)
        except _STORE_ERRORS as exc:
            raise PersistenceFailureException("The session store is unavailable") from exc
        return result.scalar_one_or_none()

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except _STORE_ERRORS:
            logger.exception("Rollback failed")
