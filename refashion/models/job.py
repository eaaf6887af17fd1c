"""
Generation job model: the record of truth for asynchronous job state.
"""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Integer, String, Text

from refashion.models.base import BaseModel


class JobStatus(str, Enum):
    """Generation job status enumeration."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class JobKind(str, Enum):
    """Kind of media a job produces."""

    IMAGE = "image"
    VIDEO = "video"


class GenerationJob(BaseModel):
    """Asynchronous image or video generation job."""

    __tablename__ = "generation_jobs"

    username = Column(String(100), nullable=False, index=True, doc="Owner of the job")

    kind = Column(
        SQLEnum(JobKind, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JobKind.VIDEO,
        doc="Kind of media produced",
    )

    status = Column(
        SQLEnum(JobStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JobStatus.PROCESSING,
        index=True,
        doc="Processing status; completed and failed are terminal",
    )

    prompt = Column(Text, nullable=True, doc="Prompt sent to the provider")

    source_image_url = Column(Text, nullable=True, doc="Input image URL")

    parameters = Column(JSON, nullable=True, doc="Generation parameters")

    webhook_url = Column(Text, nullable=True, doc="Caller's callback URL for completion notices")

    provider_request_id = Column(
        String(255), nullable=True, index=True, doc="Provider's request identifier"
    )

    output_urls = Column(JSON, nullable=True, doc="Generated output URLs")

    local_video_url = Column(Text, nullable=True, doc="Archived copy of the generated video")

    seed = Column(Integer, nullable=True, doc="Seed reported by the provider")

    error = Column(Text, nullable=True, doc="Error message for failed jobs")

    completed_at = Column(DateTime, nullable=True)

    failed_at = Column(DateTime, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def primary_output_url(self):
        if not self.output_urls:
            return None
        return next((url for url in self.output_urls if url), None)

    def __repr__(self) -> str:
        return f"<GenerationJob(id={self.id}, kind={self.kind}, status={self.status})>"
