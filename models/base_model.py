#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the TreeNetra API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- SoftDeleteMixin for records that must keep their history (users)

Models stay passive: persistence goes through DBStorage and the service
layer, derived state (lock status, token activity) lives in plain functions
next to each model.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC now; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at, updated_at
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        If you pass created_at/updated_at explicitly (e.g., in tests), they will be set.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"


class SoftDeleteMixin:
    """
    Adds a deleted_at timestamp. Soft-deleted rows stay in the table so that
    references from other collections remain resolvable.
    """

    deleted_at = Column(DateTime, nullable=True)
