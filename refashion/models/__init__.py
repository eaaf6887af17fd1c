"""
SQLAlchemy models for the Refashion jobs service.
"""

from refashion.models.base import Base, BaseModel
from refashion.models.job import GenerationJob, JobKind, JobStatus, TERMINAL_STATUSES

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    # Job models
    "GenerationJob",
    "JobKind",
    "JobStatus",
    "TERMINAL_STATUSES",
]
