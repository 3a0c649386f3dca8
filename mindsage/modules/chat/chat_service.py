"""ChatService — session-level operations exposed to the HTTP layer."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from mindsage.exceptions import InvalidReferenceException, SessionNotFoundException
from mindsage.models.chat_session import ChatSession
from mindsage.modules.chat.constants import LAST_MESSAGE_PREVIEW_LENGTH, TITLE_ELLIPSIS
from mindsage.modules.chat.identifiers import IdentifierResolver, Resolution, ResolutionStatus
from mindsage.modules.chat.normalizer import normalize_message, normalize_messages
from mindsage.modules.chat.schemas import (
    LastMessagePreview,
    MessageSchema,
    SessionDetailResponse,
    SessionSummary,
)
from mindsage.modules.chat.session_store import SessionStore
from mindsage.modules.telemetry.emitter import TelemetryEmitter
from mindsage.modules.telemetry.session_events import EVENT_SESSION_CREATED

logger = logging.getLogger(__name__)


def _preview(content: str) -> str:
    if len(content) > LAST_MESSAGE_PREVIEW_LENGTH:
        return content[:LAST_MESSAGE_PREVIEW_LENGTH] + TITLE_ELLIPSIS
    return content


def summarize_session(session: ChatSession) -> SessionSummary:
    """Build the list entry for a session."""
    messages = session.messages or []
    last_message = None
    if messages:
        last = normalize_message(messages[-1], len(messages) - 1)
        last_message = LastMessagePreview(
            content=_preview(last["content"]),
            role=last["role"],
            timestamp=last["timestamp"],
        )
    return SessionSummary(
        internal_id=session.id,
        external_id=session.external_id,
        title=session.title or f"Chat {session.started_at:%Y-%m-%d}",
        status=session.status.value,
        started_at=session.started_at,
        last_activity_at=session.last_activity_at,
        message_count=len(messages),
        last_message=last_message,
    )


class ChatService:
    """Create, list and read chat sessions."""

    def __init__(self, db: AsyncSession, telemetry: TelemetryEmitter | None = None) -> None:
        self.store = SessionStore(db)
        self.resolver = IdentifierResolver(self.store)
        self.telemetry = telemetry or TelemetryEmitter()

    async def create_session(self, owner_id: str, title: str | None = None) -> ChatSession:
        session = await self.store.create(owner_id=owner_id, title=title)
        self.telemetry.emit(
            EVENT_SESSION_CREATED,
            {
                "sessionId": session.external_id,
                "internalId": session.id,
                "ownerId": owner_id,
                "title": session.title,
            },
        )
        return session

    async def list_sessions(self, owner_id: str) -> list[SessionSummary]:
        """List an owner's sessions, newest first.

        Any failure degrades to an empty list so the caller still renders.
        """
        try:
            sessions = await self.store.list_by_owner(owner_id)
            return [summarize_session(s) for s in sessions]
        except Exception:
            logger.exception("Listing sessions for owner %s failed; returning empty list", owner_id)
            return []

    async def get_history(self, ref: str | None) -> list[MessageSchema]:
        """Return a session's messages in order.

        An unknown but well-formed reference yields an empty list rather than
        an error, which keeps read-only callers simple.
        """
        resolution = await self._resolve(ref)
        if resolution.status is ResolutionStatus.NOT_FOUND:
            return []
        return [MessageSchema(**m) for m in normalize_messages(resolution.session.messages)]

    async def get_session(self, ref: str | None) -> SessionDetailResponse:
        resolution = await self._resolve(ref)
        if resolution.status is ResolutionStatus.NOT_FOUND:
            raise SessionNotFoundException(ref.strip())
        session = resolution.session
        return SessionDetailResponse(
            internal_id=session.id,
            external_id=session.external_id,
            title=session.title or f"Chat {session.started_at:%Y-%m-%d}",
            status=session.status.value,
            started_at=session.started_at,
            last_activity_at=session.last_activity_at,
            messages=[MessageSchema(**m) for m in normalize_messages(session.messages)],
            found_by=resolution.found_by,
        )

    async def _resolve(self, ref: str | None) -> Resolution:
        resolution = await self.resolver.resolve(ref)
        if resolution.status is ResolutionStatus.INVALID_REFERENCE:
            raise InvalidReferenceException(ref)
        return resolution
