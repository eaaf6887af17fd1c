"""
FastAPI dependencies for services and collaborators.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from refashion.database import get_db
from refashion.services.fal_client import FalQueueClient
from refashion.services.job_service import JobService
from refashion.utils.webhook_security import FalWebhookVerifier, fal_webhook_verifier

__all__ = ["get_db", "get_job_service", "get_fal_client", "get_fal_verifier"]


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    """Job service bound to the request's database session."""
    return JobService(db)


def get_fal_client() -> FalQueueClient:
    """
    Provider queue client.

    Raises:
        ConfigurationError: If FAL_KEY is not configured
    """
    return FalQueueClient()


def get_fal_verifier() -> FalWebhookVerifier:
    """Process-wide webhook verifier sharing one key set cache."""
    return fal_webhook_verifier
