"""Message normalizer — converts heterogeneous message shapes to one record.

Persisted messages, provider payloads and legacy client payloads do not agree
on field names. Each attribute is probed through an ordered list of candidate
fields and falls back to a fixed default, so the output always carries a
``role``, a ``content`` string and an ISO-8601 ``timestamp``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from mindsage.models.enums import MessageRole

logger = logging.getLogger(__name__)

CONTENT_FIELDS = ("content", "text", "message")
TIMESTAMP_FIELDS = ("timestamp", "createdAt", "created_at")

# Epoch values above this are taken to be milliseconds
_EPOCH_MILLIS_THRESHOLD = 10**11


def _pick_content(raw: dict) -> str:
    for field in CONTENT_FIELDS:
        value = raw.get(field)
        if isinstance(value, str) and value:
            return value
    return ""


def _pick_role(raw: dict, index: int) -> str:
    role = raw.get("role")
    if role in (MessageRole.USER.value, MessageRole.ASSISTANT.value):
        return role
    sender = raw.get("sender")
    if isinstance(sender, str) and sender:
        return MessageRole.USER.value if sender == "user" else MessageRole.ASSISTANT.value
    return MessageRole.USER.value if index % 2 == 0 else MessageRole.ASSISTANT.value


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO string, datetime or epoch number into an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _pick_timestamp(raw: dict) -> datetime:
    for field in TIMESTAMP_FIELDS:
        parsed = parse_timestamp(raw.get(field))
        if parsed is not None:
            return parsed
    return datetime.now(UTC)


def _pick_metadata(raw: dict) -> dict | None:
    metadata = raw.get("metadata")
    if isinstance(metadata, dict):
        return metadata
    analysis = raw.get("analysis")
    if isinstance(analysis, dict):
        return {"analysis": analysis}
    return None


def normalize_message(raw: Any, index: int = 0) -> dict:
    """Return the canonical form of a single message. Never raises."""
    if isinstance(raw, str):
        raw = {"content": raw}
    elif not isinstance(raw, dict):
        raw = {}

    message: dict[str, Any] = {
        "role": _pick_role(raw, index),
        "content": _pick_content(raw),
        "timestamp": _pick_timestamp(raw).isoformat(),
    }
    metadata = _pick_metadata(raw)
    if metadata is not None:
        message["metadata"] = metadata
    return message


def _unwrap(payload: Any) -> Iterable[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("messages"), list):
            return payload["messages"]
        for value in payload.values():
            if isinstance(value, list):
                return value
    logger.debug("No message list found in payload of type %s", type(payload).__name__)
    return []


def normalize_messages(payload: Any) -> list[dict]:
    """Normalize a message list, or a dict wrapping one, in order."""
    return [normalize_message(raw, index) for index, raw in enumerate(_unwrap(payload))]
