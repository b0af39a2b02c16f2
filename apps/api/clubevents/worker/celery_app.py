from celery import Celery

from clubevents.core.config import settings

celery_app = Celery(
    "clubevents",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["clubevents.worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    timezone="UTC",
    enable_utc=True,
)
