"""
Celery Application Configuration

Configures Celery for background search index builds with:
- Redis as message broker and result backend
- Task autodiscovery from folio.tasks
- A dedicated "search" queue for index builds

Usage:
    # Start worker:
    celery -A folio.celery worker -Q search,default --loglevel=info

    # Enqueue a build:
    from folio.tasks.search import build_search_index
    build_search_index.delay(["user-123"])
"""

from celery import Celery
from folio.config import get_settings

settings = get_settings()

celery_app = Celery(
    "folio",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,  # Fair task distribution

    # Result settings
    result_expires=3600,
    task_track_started=True,

    # Retry settings
    task_acks_late=True,  # Acknowledge after completion
    task_reject_on_worker_lost=True,

    task_routes={
        "folio.tasks.search.build_search_index": {"queue": "search"},
    },

    task_default_queue="default",
)

celery_app.autodiscover_tasks(["folio.tasks"])
