"""Celery tasks for telemetry event processing."""

from celery_app import celery
from mindsage.modules.telemetry.session_events import process_session_event

DISPATCH_EVENT_TASK = "mindsage.modules.telemetry.tasks.dispatch_event"


@celery.task(name=DISPATCH_EVENT_TASK)
def dispatch_event(event_name: str, payload: dict):
    """Process one telemetry event published by the API."""
    return process_session_event(event_name, payload)
