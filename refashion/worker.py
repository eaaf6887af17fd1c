"""
Celery worker configuration and application setup.
"""
from celery import Celery

from refashion.core.config import settings

# Create Celery instance
celery_app = Celery(
    "refashion_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "refashion.tasks.job_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task routing
    task_routes={
        "refashion.tasks.job_tasks.deliver_job_webhook": {"queue": "notification_queue"},
        "refashion.tasks.job_tasks.archive_job_video": {"queue": "media_queue"},
    },

    # Task execution settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task result settings
    result_expires=3600,  # 1 hour

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Task retry settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
    task_track_started=True,
)

if __name__ == "__main__":
    celery_app.start()
