"""TelemetryEmitter — fire-and-forget publishing of side-channel events.

Events are handed to the Celery broker from a background task so the caller
never waits on the broker. Every failure is logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from mindsage.config import settings

logger = logging.getLogger(__name__)

# Strong references to in-flight sends; the event loop only keeps weak ones
_PENDING: set[asyncio.Task] = set()


def _publish_to_celery(event_name: str, payload: dict) -> None:
    from celery_app import celery
    from mindsage.modules.telemetry.tasks import DISPATCH_EVENT_TASK

    celery.send_task(DISPATCH_EVENT_TASK, args=[event_name, payload])


class TelemetryEmitter:
    """Publishes telemetry events without blocking the request path."""

    def __init__(
        self,
        publisher: Callable[[str, dict], None] | None = None,
        enabled: bool | None = None,
        timeout: float | None = None,
    ) -> None:
        self.publisher = publisher or _publish_to_celery
        self.enabled = settings.telemetry_enabled if enabled is None else enabled
        self.timeout = settings.telemetry_timeout_seconds if timeout is None else timeout

    def emit(self, event_name: str, data: dict) -> None:
        """Schedule an event for publishing and return immediately."""
        if not self.enabled:
            return
        payload = {
            "name": event_name,
            "data": data,
            "sentAt": datetime.now(UTC).isoformat(),
        }
        try:
            task = asyncio.get_running_loop().create_task(self._send(event_name, payload))
        except RuntimeError:
            logger.warning("No running event loop; dropped telemetry event %s", event_name)
            return
        _PENDING.add(task)
        task.add_done_callback(_PENDING.discard)

    async def _send(self, event_name: str, payload: dict) -> None:
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.publisher, event_name, payload),
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.warning("Telemetry event %s failed (ignored): %s", event_name, exc)
        else:
            logger.debug("Published telemetry event %s", event_name)

    @staticmethod
    async def drain() -> None:
        """Wait for all in-flight sends to finish."""
        if _PENDING:
            await asyncio.gather(*list(_PENDING), return_exceptions=True)
