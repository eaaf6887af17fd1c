"""
Explicit spawning of background work for terminal jobs.

Side effects are enqueued as Celery tasks; their state is observable through
the returned AsyncResult handles and the worker's task events.
"""
import logging
from typing import List

from celery.result import AsyncResult

from refashion.models.job import GenerationJob, JobKind, JobStatus

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Enqueues the downstream tasks of a job transition."""

    def dispatch_job_notification(self, job_id: str) -> AsyncResult:
        from refashion.tasks.job_tasks import deliver_job_webhook

        return deliver_job_webhook.apply_async(args=[job_id])

    def dispatch_video_archive(self, job_id: str, notify: bool = False) -> AsyncResult:
        from refashion.tasks.job_tasks import archive_job_video, deliver_job_webhook

        if not notify:
            return archive_job_video.apply_async(args=[job_id])
        # The notice follows the archive whether it succeeds or gives up
        notice = deliver_job_webhook.si(job_id)
        return archive_job_video.apply_async(args=[job_id], link=notice, link_error=notice)

    def dispatch_terminal_effects(self, job: GenerationJob) -> List[AsyncResult]:
        """
        Enqueue everything that follows a job's transition to a terminal state.

        Completed video jobs are archived before the caller is notified, so the
        notice can point at the archived copy.

        Args:
            job: The job, already in its terminal state

        Returns:
            Handles of the enqueued tasks
        """
        handles = []
        try:
            if job.status == JobStatus.COMPLETED and job.kind == JobKind.VIDEO:
                handles.append(self.dispatch_video_archive(job.id, notify=bool(job.webhook_url)))
            elif job.webhook_url:
                handles.append(self.dispatch_job_notification(job.id))
        except Exception as e:
            logger.error(f"Failed to enqueue follow-up tasks for job {job.id}: {e}", exc_info=True)
            return handles

        logger.info(
            "Follow-up tasks enqueued",
            extra={"job_id": job.id, "task_ids": [handle.id for handle in handles]},
        )
        return handles


task_dispatcher = TaskDispatcher()
