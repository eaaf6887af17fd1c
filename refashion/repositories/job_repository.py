"""
Generation job repository for database operations.
"""
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from refashion.models.job import GenerationJob, JobKind, JobStatus
from refashion.repositories.base import BaseRepository
from refashion.schemas.job import JobCreate, JobStatusPayload
from refashion.utils.logging import get_logger

logger = get_logger(__name__)


class JobRepository(BaseRepository[GenerationJob, JobCreate]):
    """Repository for generation job operations."""

    def __init__(self, db: Session):
        """Initialize job repository."""
        super().__init__(GenerationJob, db)

    def create_job(self, job_data: JobCreate) -> GenerationJob:
        """
        Create a new job in processing state.

        Args:
            job_data: Job creation data

        Returns:
            Created job
        """
        job = self.create(job_data)
        logger.info("Job created", job_id=job.id, kind=job.kind.value)
        return job

    def get_by_provider_request_id(self, provider_request_id: str) -> Optional[GenerationJob]:
        """Get a job by the provider's request identifier."""
        return (
            self.db.query(GenerationJob)
            .filter(GenerationJob.provider_request_id == provider_request_id)
            .first()
        )

    def set_provider_request_id(self, job_id: str, provider_request_id: str) -> None:
        """Record the provider's request identifier for a job."""
        self.db.execute(
            update(GenerationJob)
            .where(GenerationJob.id == job_id)
            .values(provider_request_id=provider_request_id, updated_at=datetime.utcnow())
        )
        self.db.commit()

    def complete_job(
        self,
        job_id: str,
        output_urls: Sequence[Optional[str]],
        seed: Optional[int] = None,
    ) -> bool:
        """
        Move a processing job to completed.

        Args:
            job_id: Job ID
            output_urls: Generated output URLs
            seed: Seed reported by the provider

        Returns:
            True if the transition happened, False if the job was already terminal
        """
        now = datetime.utcnow()
        return self._transition_from_processing(
            job_id,
            status=JobStatus.COMPLETED,
            output_urls=list(output_urls),
            seed=seed,
            error=None,
            completed_at=now,
            updated_at=now,
        )

    def fail_job(self, job_id: str, error: str) -> bool:
        """
        Move a processing job to failed.

        Args:
            job_id: Job ID
            error: Failure message

        Returns:
            True if the transition happened, False if the job was already terminal
        """
        now = datetime.utcnow()
        return self._transition_from_processing(
            job_id,
            status=JobStatus.FAILED,
            error=error,
            failed_at=now,
            updated_at=now,
        )

    def _transition_from_processing(self, job_id: str, **values) -> bool:
        # Conditional write: only a job still processing can move
        result = self.db.execute(
            update(GenerationJob)
            .where(
                GenerationJob.id == job_id,
                GenerationJob.status == JobStatus.PROCESSING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        applied = result.rowcount == 1
        if not applied:
            logger.info("Job transition skipped", job_id=job_id, target_status=values["status"].value)
        return applied

    def set_local_video_url(self, job_id: str, local_video_url: str) -> None:
        """Record where the generated video was archived."""
        self.db.execute(
            update(GenerationJob)
            .where(GenerationJob.id == job_id)
            .values(local_video_url=local_video_url, updated_at=datetime.utcnow())
        )
        self.db.commit()

    def get_status(self, job_id: str) -> Optional[JobStatusPayload]:
        """
        Get the polling view of a job.

        Args:
            job_id: Job ID

        Returns:
            Status payload, or None when the job does not exist
        """
        job = self.get(job_id)
        if job is None:
            return None

        # Expire so the view reflects conditional writes made outside the ORM
        self.db.refresh(job)

        is_video = job.kind == JobKind.VIDEO
        return JobStatusPayload(
            status=job.status,
            video_url=job.primary_output_url if is_video else None,
            local_video_url=job.local_video_url,
            generated_image_urls=None if is_video else (job.output_urls or None),
            error=job.error,
            seed=job.seed,
        )

    def list_jobs(
        self,
        username: Optional[str] = None,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[GenerationJob], int]:
        """
        List jobs with filtering and pagination, newest first.

        Returns:
            Tuple of (jobs, total count)
        """
        query = self.db.query(GenerationJob)
        if username:
            query = query.filter(GenerationJob.username == username)
        if status:
            query = query.filter(GenerationJob.status == status)

        total = query.count()
        jobs = (
            query.order_by(GenerationJob.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return jobs, total
