"""
Background tasks run after a job reaches a terminal state.
"""
import logging
from typing import Any, Dict, List, Optional

from refashion.core.config import settings
from refashion.core.exceptions import ConfigurationError
from refashion.database import SessionLocal
from refashion.models.job import GenerationJob, JobKind, JobStatus
from refashion.repositories.job_repository import JobRepository
from refashion.schemas.job import OutboundWebhookPayload
from refashion.services.storage import get_storage_backend
from refashion.services.webhook_sender import send_webhook
from refashion.tasks.base import MediaTask, NotificationTask, TaskResult, run_async
from refashion.worker import celery_app

logger = logging.getLogger(__name__)


def absolute_url(url: Optional[str]) -> Optional[str]:
    """Turn an app-relative URL into one reachable by external callers."""
    if not url:
        return None
    if url.startswith(("http://", "https://")):
        return url
    return f"{settings.APP_URL.rstrip('/')}/{url.lstrip('/')}"


def build_outbound_payload(job: GenerationJob) -> OutboundWebhookPayload:
    """Build the completion notice for a terminal job."""
    if job.status == JobStatus.COMPLETED:
        urls: List[Optional[str]] = [absolute_url(url) for url in (job.output_urls or [])]
        if job.kind == JobKind.VIDEO:
            return OutboundWebhookPayload(
                status="completed",
                video_url=absolute_url(job.local_video_url) or (urls[0] if urls else None),
                history_id=job.id,
            )
        return OutboundWebhookPayload(
            status="completed",
            generated_image_urls=urls,
            history_id=job.id,
        )

    if job.status == JobStatus.FAILED:
        return OutboundWebhookPayload(
            status="failed",
            error=job.error or "Generation failed",
            history_id=job.id,
        )

    raise ValueError(f"Job {job.id} is not in a terminal state")


@celery_app.task(base=NotificationTask, bind=True)
def deliver_job_webhook(self, job_id: str, **kwargs) -> Dict[str, Any]:
    """
    Deliver the completion notice of a terminal job to its webhook URL.

    Args:
        job_id: The generation job ID

    Returns:
        Task result dictionary
    """
    logger.info(f"Delivering webhook for job {job_id}")
    metadata = {"task_id": self.request.id}

    db = SessionLocal()
    try:
        job = JobRepository(db).get(job_id)
        if job is None:
            error_msg = f"Generation job not found: {job_id}"
            logger.error(error_msg)
            return TaskResult.error_result(error=error_msg, data={"job_id": job_id}, metadata=metadata).to_dict()

        if not job.webhook_url:
            return TaskResult.error_result(
                error="Job has no webhook URL", data={"job_id": job_id}, metadata=metadata
            ).to_dict()

        payload = build_outbound_payload(job)
        try:
            delivered = run_async(send_webhook(job.webhook_url, payload))
        except ConfigurationError as e:
            logger.error(f"Webhook for job {job_id} not sent: {e.message}")
            return TaskResult.error_result(error=e.message, data={"job_id": job_id}, metadata=metadata).to_dict()

        data = {"job_id": job_id, "status": payload.status, "delivered": delivered}
        if delivered:
            return TaskResult.success_result(data=data, metadata=metadata).to_dict()
        return TaskResult.error_result(error="Webhook delivery failed", data=data, metadata=metadata).to_dict()
    finally:
        db.close()


@celery_app.task(base=MediaTask, bind=True)
def archive_job_video(self, job_id: str, **kwargs) -> Dict[str, Any]:
    """
    Copy a completed job's video to the configured storage backend.

    Args:
        job_id: The generation job ID

    Returns:
        Task result dictionary
    """
    logger.info(f"Archiving video for job {job_id}")
    metadata = {"task_id": self.request.id}

    db = SessionLocal()
    try:
        repo = JobRepository(db)
        job = repo.get(job_id)
        if job is None or job.status != JobStatus.COMPLETED or not job.primary_output_url:
            error_msg = f"Job {job_id} has no completed video to archive"
            logger.warning(error_msg)
            return TaskResult.error_result(error=error_msg, data={"job_id": job_id}, metadata=metadata).to_dict()

        storage = get_storage_backend()
        stored_url = run_async(
            storage.store_remote_file(job.primary_output_url, "videos", f"{job_id}.mp4")
        )
        repo.set_local_video_url(job_id, stored_url)

        return TaskResult.success_result(
            data={"job_id": job_id, "local_video_url": stored_url, "backend": storage.name},
            metadata=metadata,
        ).to_dict()
    finally:
        db.close()
