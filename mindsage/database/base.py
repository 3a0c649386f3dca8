"""Declarative base and shared column mixins."""

from __future__ import annotations

import secrets
from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

INTERNAL_ID_LENGTH = 24


def generate_internal_id() -> str:
    """Return a fresh 24-character lowercase hexadecimal identifier."""
    return secrets.token_hex(INTERNAL_ID_LENGTH // 2)


class Base(DeclarativeBase):
    pass


class HexIdPrimaryKeyMixin:
    id: Mapped[str] = mapped_column(
        String(INTERNAL_ID_LENGTH), primary_key=True, default=generate_internal_id
    )


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
