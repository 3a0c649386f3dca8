"""Worker-side handlers for chat session telemetry events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

EVENT_SESSION_CREATED = "therapy/session.created"
EVENT_SESSION_MESSAGE = "therapy/session.message"


def handle_session_created(payload: dict) -> dict:
    data = payload.get("data") or {}
    logger.info("Therapy session created: %s", data.get("sessionId"))
    return {**data, "processedAt": datetime.now(UTC).isoformat()}


def handle_session_message(payload: dict) -> dict:
    data = payload.get("data") or {}
    history = data.get("history") or []
    logger.info(
        "Therapy session message for %s (history=%d messages)",
        data.get("sessionId"),
        len(history),
    )
    return {
        "sessionId": data.get("sessionId"),
        "historyLength": len(history),
        "processedAt": datetime.now(UTC).isoformat(),
    }


SESSION_EVENT_HANDLERS: dict[str, Callable[[dict], dict]] = {
    EVENT_SESSION_CREATED: handle_session_created,
    EVENT_SESSION_MESSAGE: handle_session_message,
}


def process_session_event(event_name: str, payload: dict) -> dict | None:
    """Run the handler for an event; unknown events are logged and skipped."""
    handler = SESSION_EVENT_HANDLERS.get(event_name)
    if handler is None:
        logger.warning("No handler for telemetry event %s; skipped", event_name)
        return None
    return handler(payload)
