"""Celery application configuration."""

from celery import Celery

from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "paperdemo",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["paperdemo.orchestrator.tasks"],
)

celery_app.conf.update(
    # Task execution settings
    task_time_limit=settings.task_time_limit,
    task_soft_time_limit=settings.task_soft_time_limit,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.dispatcher_workers,

    # Result settings
    result_expires=86400,

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    timezone="UTC",
    enable_utc=True,

    task_routes={
        "paperdemo.*": {"queue": "pipeline"},
    },
    task_default_queue="pipeline",
)
