"""
Celery tasks package.
"""
from refashion.tasks.base import BaseTask, MediaTask, NotificationTask, TaskResult, get_task_status
from refashion.tasks.job_tasks import archive_job_video, deliver_job_webhook

__all__ = [
    # Base classes
    "BaseTask",
    "NotificationTask",
    "MediaTask",
    "TaskResult",

    # Utility functions
    "get_task_status",

    # Job tasks
    "deliver_job_webhook",
    "archive_job_video",
]
