"""
Generation job request and response schemas.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, validator

from refashion.models.job import JobKind, JobStatus


class JobCreate(BaseModel):
    """Generation job creation schema."""

    username: str = Field(..., min_length=1, max_length=100, description="Owner of the job")
    kind: JobKind = Field(default=JobKind.VIDEO, description="Kind of media produced")
    prompt: Optional[str] = Field(None, description="Prompt sent to the provider")
    source_image_url: Optional[str] = Field(None, description="Input image URL")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Generation parameters")
    webhook_url: Optional[str] = Field(None, description="Caller's callback URL")

    @validator("webhook_url")
    def validate_webhook_url(cls, v):
        """Only absolute http(s) callback URLs are accepted."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("Webhook URL must be an absolute http(s) URL")
        return v


class VideoJobRequest(BaseModel):
    """Request body for submitting an image-to-video job."""

    username: str = Field(..., min_length=1, max_length=100)
    prompt: str = Field(..., min_length=1, description="Motion prompt")
    image_url: str = Field(..., min_length=1, description="Publicly reachable source image URL")
    resolution: Optional[Literal["480p", "720p", "1080p"]] = None
    duration: Optional[str] = Field(None, description="Duration in seconds, 2 to 12")
    camera_fixed: Optional[bool] = None
    seed: Optional[int] = None
    aspect_ratio: Optional[Literal["21:9", "16:9", "4:3", "1:1", "3:4", "9:16", "auto"]] = None
    webhook_url: Optional[str] = Field(None, description="Caller's callback URL")

    @validator("prompt")
    def validate_prompt(cls, v):
        if not v.strip():
            raise ValueError("Prompt is required")
        return v

    @validator("duration")
    def validate_duration(cls, v):
        if v is not None and v not in {str(n) for n in range(2, 13)}:
            raise ValueError("Duration must be between 2 and 12 seconds")
        return v


class JobSubmissionResponse(BaseModel):
    """Response for an accepted job submission."""

    job_id: str = Field(..., alias="jobId")
    status: JobStatus

    class Config:
        populate_by_name = True


class JobStatusPayload(BaseModel):
    """Job status as returned by the polling endpoint."""

    status: JobStatus
    video_url: Optional[str] = Field(None, alias="videoUrl")
    local_video_url: Optional[str] = Field(None, alias="localVideoUrl")
    generated_image_urls: Optional[List[Optional[str]]] = Field(None, alias="generatedImageUrls")
    error: Optional[str] = None
    seed: Optional[int] = None

    class Config:
        populate_by_name = True


class OutboundWebhookPayload(BaseModel):
    """Completion notice sent to the caller's webhook URL."""

    status: Literal["completed", "failed"]
    generated_image_urls: Optional[List[Optional[str]]] = Field(None, alias="generatedImageUrls")
    video_url: Optional[str] = Field(None, alias="videoUrl")
    error: Optional[str] = None
    history_id: str = Field(..., alias="historyId")

    class Config:
        populate_by_name = True

    def to_wire(self) -> Dict[str, Any]:
        """Serialise with the camelCase wire names, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class WebhookReceipt(BaseModel):
    """Acknowledgement returned to the provider."""

    status: str = "received"
    job_id: str
    applied: bool


class JobResponse(BaseModel):
    """Generation job as listed to its owner."""

    id: str
    username: str
    kind: JobKind
    status: JobStatus
    prompt: Optional[str] = None
    output_urls: Optional[List[Optional[str]]] = None
    local_video_url: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobListResponse(BaseModel):
    """Paginated job list."""

    items: List[JobResponse]
    total: int
    limit: int
    offset: int
