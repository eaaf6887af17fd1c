"""
Base model class with common fields and utilities.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base, declared_attr


def generate_id() -> str:
    """Generate an opaque string identifier."""
    return str(uuid.uuid4())


class _Base:
    """Base class for all database models."""

    id: Any
    __name__: str

    # Generate __tablename__ automatically
    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


Base = declarative_base(cls=_Base)


class BaseModel(Base):
    """Base model with common fields for all entities."""

    __abstract__ = True

    id = Column(
        String(36),
        primary_key=True,
        default=generate_id,
        index=True,
        doc="Opaque unique identifier for the record",
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        doc="Timestamp when the record was created",
    )

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
        doc="Timestamp when the record was last updated",
    )

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={self.id})>"
