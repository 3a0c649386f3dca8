"""ChatSession model: one document-style row per therapy conversation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from mindsage.database.base import Base, HexIdPrimaryKeyMixin, TimestampMixin
from mindsage.models.enums import SessionStatus

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
MessageList = JSON().with_variant(JSONB(), "postgresql")


class ChatSession(HexIdPrimaryKeyMixin, TimestampMixin, Base):
    """Session document: the message sequence is embedded and append-only.

    ``id`` is the internal identifier (24 hex chars); ``external_id`` is the
    caller-facing UUID token. ``version`` increments with every committed
    turn and guards against two turns writing the same sequence position.
    """

    __tablename__ = "chat_sessions"

    external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[SessionStatus] = mapped_column(
        SQLAlchemyEnum(
            SessionStatus,
            name="chat_session_status",
            native_enum=False,
            length=16,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=SessionStatus.ACTIVE,
    )
    messages: Mapped[list] = mapped_column(MessageList, nullable=False, default=list)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_activity_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_chat_sessions_external_id", "external_id", unique=True),
        Index("ix_chat_sessions_owner_started", "owner_id", "started_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChatSession id={self.id} external_id={self.external_id} "
            f"owner={self.owner_id} messages={len(self.messages or [])}>"
        )
