"""
Generation job service: submission, provider results and status lookups.
"""
from typing import Optional

from sqlalchemy.orm import Session

from refashion.core.config import settings
from refashion.core.exceptions import JobNotFoundError, ProviderError
from refashion.models.job import GenerationJob, JobKind, JobStatus
from refashion.repositories.job_repository import JobRepository
from refashion.schemas.fal import FalWebhookBody, parse_generation_output
from refashion.schemas.job import JobCreate, JobStatusPayload, VideoJobRequest
from refashion.services.fal_client import FalQueueClient, VideoGenerationInput
from refashion.tasks.dispatcher import TaskDispatcher, task_dispatcher
from refashion.utils.logging import get_logger, log_business_event

logger = get_logger(__name__)

SUBMISSION_FAILED_MESSAGE = "Failed to submit job to fal.ai"


def build_provider_callback_url(job_id: str) -> str:
    """URL the provider calls when a job finishes."""
    return f"{settings.APP_URL.rstrip('/')}/api/v1/webhooks/fal?job_id={job_id}"


class JobService:
    """Service for generation job workflows."""

    def __init__(self, db: Session, dispatcher: Optional[TaskDispatcher] = None):
        """
        Initialize job service.

        Args:
            db: Database session
            dispatcher: Spawner for follow-up tasks
        """
        self.db = db
        self.job_repository = JobRepository(db)
        self.dispatcher = dispatcher or task_dispatcher

    def create_job(self, job_data: JobCreate) -> GenerationJob:
        """Create a job in processing state."""
        job = self.job_repository.create_job(job_data)
        log_business_event(
            "job_created",
            "generation_job",
            job.id,
            username=job.username,
            details={"kind": job.kind.value},
        )
        return job

    async def submit_video_job(
        self,
        request: VideoJobRequest,
        fal_client: FalQueueClient,
    ) -> GenerationJob:
        """
        Create a video job and hand it to the provider.

        Args:
            request: Video job request
            fal_client: Provider queue client

        Returns:
            The created job, still processing

        Raises:
            RefashionBaseException: If submission fails; the job is marked failed first
        """
        generation_input = VideoGenerationInput(
            prompt=request.prompt,
            image_url=request.image_url,
            resolution=request.resolution,
            duration=request.duration,
            camera_fixed=request.camera_fixed,
            seed=request.seed,
            aspect_ratio=request.aspect_ratio,
        )
        job = self.create_job(
            JobCreate(
                username=request.username,
                kind=JobKind.VIDEO,
                prompt=request.prompt,
                source_image_url=request.image_url,
                parameters=generation_input.to_provider_input(),
                webhook_url=request.webhook_url,
            )
        )

        try:
            request_id = await fal_client.submit(
                settings.FAL_VIDEO_MODEL_ID,
                generation_input.to_provider_input(),
                build_provider_callback_url(job.id),
            )
        except Exception as e:
            logger.error("Provider submission failed", job_id=job.id, error=str(e))
            self.job_repository.fail_job(job.id, SUBMISSION_FAILED_MESSAGE)
            raise

        self.job_repository.set_provider_request_id(job.id, request_id)
        self.db.refresh(job)
        return job

    def apply_provider_result(self, job_id: str, body: FalWebhookBody) -> bool:
        """
        Apply a verified provider webhook to a job.

        A job leaves processing at most once. Only the call that performs the
        transition dispatches the follow-up tasks; repeated deliveries are
        no-ops.

        Args:
            job_id: Job ID from the callback URL
            body: Parsed webhook body

        Returns:
            True if the job changed state

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = self.job_repository.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        if job.provider_request_id and job.provider_request_id != body.request_id:
            logger.warning(
                "Webhook request id does not match job",
                job_id=job_id,
                expected=job.provider_request_id,
                received=body.request_id,
            )

        if body.is_success:
            try:
                output = parse_generation_output(body.payload)
            except ProviderError as e:
                logger.error("Unusable provider result", job_id=job_id, error=e.message, details=e.details)
                applied = self.job_repository.fail_job(job_id, e.message)
            else:
                applied = self.job_repository.complete_job(job_id, output.urls, output.seed)
        else:
            applied = self.job_repository.fail_job(job_id, body.failure_message())

        if not applied:
            logger.info("Duplicate provider result ignored", job_id=job_id, provider_status=body.status)
            return False

        self.db.refresh(job)
        log_business_event(
            "job_completed" if job.status == JobStatus.COMPLETED else "job_failed",
            "generation_job",
            job.id,
            username=job.username,
            details={"request_id": body.request_id, "error": job.error},
        )
        self.dispatcher.dispatch_terminal_effects(job)
        return True

    def get_status(self, job_id: str) -> JobStatusPayload:
        """
        Get the polling view of a job.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        payload = self.job_repository.get_status(job_id)
        if payload is None:
            raise JobNotFoundError(job_id)
        return payload
