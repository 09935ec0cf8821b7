"""Shared utilities and mixins for ORM models."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import declared_attr, relationship


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Live:
    """Lifecycle state of a record that has not been deleted."""


@dataclass(frozen=True)
class Deleted:
    """Lifecycle state of a soft-deleted record."""

    at: datetime
    by: str | None


Lifecycle = Union[Live, Deleted]


class TrackedMixin:
    """Creator/modifier attribution plus created/updated timestamps.

    ``created_by_id`` stays NULL for system and seed writes; it never
    points at a placeholder user.
    """

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    @declared_attr
    def created_by_id(cls):
        return Column(String(36), ForeignKey("users.id"), nullable=True)

    @declared_attr
    def modified_by_id(cls):
        return Column(String(36), ForeignKey("users.id"), nullable=True)

    @declared_attr
    def created_by(cls):
        return relationship("User", foreign_keys=f"{cls.__name__}.created_by_id")

    @declared_attr
    def modified_by(cls):
        return relationship("User", foreign_keys=f"{cls.__name__}.modified_by_id")


class AuditMixin(TrackedMixin):
    """Tracked attribution plus soft delete (``deleted_at`` + ``deleted_by_id``)."""

    deleted_at = Column(DateTime, nullable=True, index=True)

    @declared_attr
    def deleted_by_id(cls):
        return Column(String(36), ForeignKey("users.id"), nullable=True)

    @declared_attr
    def deleted_by(cls):
        return relationship("User", foreign_keys=f"{cls.__name__}.deleted_by_id")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def lifecycle(self) -> Lifecycle:
        """Return ``Live()`` or ``Deleted(at, by)`` for this record."""
        if self.deleted_at is None:
            return Live()
        return Deleted(at=self.deleted_at, by=self.deleted_by_id)
