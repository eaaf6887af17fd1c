"""
Base task classes with retry logic and error handling.
"""

import asyncio
import logging
import traceback
from typing import Any, Dict, Optional

from celery import Task

from refashion.worker import celery_app

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run a coroutine to completion from synchronous task code."""
    return asyncio.run(coro)


class BaseTask(Task):
    """
    Base task class with common retry logic and error handling.
    """

    autoretry_for = (Exception,)
    retry_kwargs = {
        "max_retries": 3,
        "countdown": 60,
    }
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True

    def on_success(self, retval: Any, task_id: str, args: tuple, kwargs: dict) -> None:
        logger.info(
            "Task succeeded",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "args": args,
                "result": retval,
            },
        )

    def on_failure(
        self, exc: Exception, task_id: str, args: tuple, kwargs: dict, einfo: Any
    ) -> None:
        """
        Failure handler called when task fails permanently.
        """
        logger.error(
            "Task failed permanently",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "args": args,
                "error": str(exc),
                "traceback": traceback.format_exception(
                    type(exc), exc, exc.__traceback__
                ),
            },
        )

    def on_retry(
        self, exc: Exception, task_id: str, args: tuple, kwargs: dict, einfo: Any
    ) -> None:
        logger.warning(
            "Task retry",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "args": args,
                "error": str(exc),
                "retry_count": getattr(self.request, "retries", 0),
                "max_retries": self.max_retries,
            },
        )


class NotificationTask(BaseTask):
    """
    Outbound webhook delivery. Delivery retries itself, so the task does not.
    """

    autoretry_for = ()
    retry_kwargs = {"max_retries": 0}

    def apply_async(self, args=None, kwargs=None, **options):
        options.setdefault("queue", "notification_queue")
        return super().apply_async(args, kwargs, **options)


class MediaTask(BaseTask):
    """
    Media archiving with a short backoff window.
    """

    retry_kwargs = {
        "max_retries": 3,
        "countdown": 30,
    }
    retry_backoff_max = 300

    def apply_async(self, args=None, kwargs=None, **options):
        options.setdefault("queue", "media_queue")
        return super().apply_async(args, kwargs, **options)


class TaskResult:
    """
    Standardized task result wrapper.
    """

    def __init__(
        self,
        success: bool,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.success = success
        self.data = data or {}
        self.error = error
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "metadata": self.metadata,
        }

    @classmethod
    def success_result(
        cls,
        data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "TaskResult":
        """Create a success result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def error_result(
        cls,
        error: str,
        data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "TaskResult":
        """Create an error result."""
        return cls(success=False, data=data, error=error, metadata=metadata)


def get_task_status(task_id: str) -> Optional[Dict[str, Any]]:
    """
    Get task status and result from Celery.

    Args:
        task_id: The task ID to check

    Returns:
        Dictionary with task status information
    """
    result = celery_app.AsyncResult(task_id)

    return {
        "task_id": task_id,
        "status": result.status,
        "result": result.result if result.ready() else None,
        "traceback": result.traceback if result.failed() else None,
        "date_done": result.date_done,
    }
