"""Audit attribution and soft delete for every ledger and catalog entity.

Entities opt in through ``AuditMixin`` (created/modified/deleted by and
at). This service is the single place that stamps those fields, hides
deleted rows from default listings, and refuses to delete an entity that
still has live dependents.
"""

import logging
from typing import TypeVar

from sqlalchemy.orm import Query, Session

from models.utils import AuditMixin, TrackedMixin, utc_now
from services.exceptions import DependencyExistsError, EntityDeletedError, NotFoundError
from services.principal_service import Principal

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=AuditMixin)


class AuditService:
    """Stamps audit fields and applies soft-delete rules."""

    @staticmethod
    def actor_id(actor: Principal | None) -> str | None:
        """The id to record for ``actor``; None for system operations."""
        return actor.id if actor is not None else None

    @staticmethod
    def stamp_created(entity: TrackedMixin, actor: Principal | None) -> None:
        entity.created_by_id = AuditService.actor_id(actor)

    @staticmethod
    def stamp_modified(entity: TrackedMixin, actor: Principal | None) -> None:
        entity.modified_by_id = AuditService.actor_id(actor)

    @staticmethod
    def query(db: Session, model: type[T], include_deleted: bool = False) -> Query:
        """Base query for ``model``, excluding soft-deleted rows by default."""
        query = db.query(model)
        if not include_deleted:
            query = query.filter(model.deleted_at.is_(None))
        return query

    @staticmethod
    def get(
        db: Session,
        model: type[T],
        entity_id: str,
        resource: str,
        include_deleted: bool = True,
    ) -> T:
        """Fetch an entity by id or raise ``NotFoundError``.

        Lookups by id include soft-deleted rows unless told otherwise, so
        history stays addressable.
        """
        entity = (
            AuditService.query(db, model, include_deleted)
            .filter(model.id == entity_id)
            .first()
        )
        if entity is None:
            raise NotFoundError(resource, entity_id)
        return entity

    @staticmethod
    def ensure_live(entity: AuditMixin, resource: str) -> None:
        """Raise ``EntityDeletedError`` if ``entity`` is soft-deleted."""
        if entity.is_deleted:
            raise EntityDeletedError(
                f"{resource} {entity.id} has been deleted",
                resource=resource,
                entity_id=entity.id,
                deleted_at=entity.deleted_at.isoformat(),
            )

    @staticmethod
    def ensure_no_dependents(
        blocking_count: int, resource: str, entity_id: str, dependent_label: str
    ) -> None:
        """Raise ``DependencyExistsError`` naming the blocking count."""
        if blocking_count > 0:
            raise DependencyExistsError(
                f"Cannot delete {resource} {entity_id}: it has "
                f"{blocking_count} {dependent_label}",
                blocking_count=blocking_count,
                resource=resource,
                entity_id=entity_id,
            )

    @staticmethod
    def soft_delete(entity: AuditMixin, actor: Principal | None, resource: str) -> None:
        """Mark ``entity`` deleted by ``actor``. Deleting twice is an error."""
        AuditService.ensure_live(entity, resource)
        entity.deleted_at = utc_now()
        entity.deleted_by_id = AuditService.actor_id(actor)
        logger.info(
            "Soft-deleted %s %s (actor=%s)", resource, entity.id, entity.deleted_by_id
        )
