"""
Celery application instance.

Configured with Redis broker and backend. Beat runs the invite reaper.
"""

from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "onward_crm",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.invite_tasks",
    ],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Results
    result_expires=3600,
    # Retry policy
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Concurrency
    worker_prefetch_multiplier=1,
    # Routing
    task_default_queue="default",
    task_queues={
        "default": {},
        "maintenance": {},
    },
    task_routes={
        "app.workers.invite_tasks.*": {"queue": "maintenance"},
    },
    # Periodic
    beat_schedule={
        "purge-expired-invites": {
            "task": "app.workers.invite_tasks.purge_expired_invites",
            "schedule": float(settings.INVITE_REAPER_INTERVAL_SECONDS),
        },
    },
)
