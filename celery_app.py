"""Celery application configuration for MindSage background tasks."""

from celery import Celery

from mindsage.config import settings

celery = Celery("mindsage")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # --- Queue routing per job type ---
    task_routes={
        "mindsage.modules.telemetry.tasks.*": {"queue": "telemetry"},
    },
    # --- Reliability settings ---
    task_default_retry_delay=60,
    task_max_retries=3,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Telemetry results are never read back
    task_ignore_result=True,
    # --- Broker transport options (Redis reliability) ---
    broker_transport_options={
        "max_retries": 3,
        "interval_start": 0,
        "interval_step": 0.2,
        "interval_max": 1.0,
        "retry_on_timeout": True,
        "visibility_timeout": 3600,
    },
)

celery.autodiscover_tasks([
    "mindsage.modules.telemetry",
])
