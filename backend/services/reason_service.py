"""Service for the reason catalog (Sale, Waste, Tasting, ...)."""

import logging

from sqlalchemy.orm import Session

from models import Reason
from services.exceptions import DuplicateNameError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_REASONS: list[tuple[str, str]] = [
    ("Sale", "Sold to a customer"),
    ("Tasting", "Offered for tasting"),
    ("Board", "Used on a cheese or charcuterie board"),
    ("Advertising", "Used for advertising or photography"),
    ("Waste", "Discarded as waste or spoilage"),
    ("Internal consumption", "Consumed internally by staff"),
    ("Courtesy", "Given away as a courtesy"),
    ("Sampling", "Cut as a sample for quality control"),
    ("Event", "Used at an event"),
    ("Other", "Any other reason; explain in the notes"),
]


class ReasonService:
    """Manages reasons. Reasons are deactivated, never deleted."""

    @staticmethod
    def resolve_reason(db: Session, reason_id: str) -> Reason:
        """Return the reason with ``reason_id`` or raise ``NotFoundError``.

        Deactivated reasons still resolve; they only disappear from the
        active listing.
        """
        reason = db.query(Reason).filter_by(id=reason_id).first()
        if reason is None:
            raise NotFoundError("Reason", reason_id)
        return reason

    @staticmethod
    def list_reasons(db: Session, include_inactive: bool = False) -> list[Reason]:
        query = db.query(Reason)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(Reason.name.asc()).all()

    @staticmethod
    def create_reason(db: Session, name: str, description: str | None = None) -> Reason:
        name = _clean_name(name)
        if db.query(Reason).filter_by(name=name).first():
            raise DuplicateNameError(f"Reason already exists: {name}", name=name)

        reason = Reason(name=name, description=description, is_active=True)
        db.add(reason)
        db.flush()
        logger.info("Created reason: %s", name)
        return reason

    @staticmethod
    def update_reason(
        db: Session,
        reason_id: str,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> Reason:
        """Update a reason. ``None`` leaves a field unchanged."""
        reason = ReasonService.resolve_reason(db, reason_id)

        if name is not None:
            name = _clean_name(name)
            clash = (
                db.query(Reason)
                .filter(Reason.name == name, Reason.id != reason_id)
                .first()
            )
            if clash:
                raise DuplicateNameError(f"Reason already exists: {name}", name=name)
            reason.name = name
        if description is not None:
            reason.description = description
        if is_active is not None:
            reason.is_active = is_active

        db.flush()
        logger.info("Updated reason: %s", reason_id)
        return reason

    @staticmethod
    def deactivate_reason(db: Session, reason_id: str) -> Reason:
        reason = ReasonService.resolve_reason(db, reason_id)
        reason.is_active = False
        db.flush()
        logger.info("Deactivated reason: %s (%s)", reason_id, reason.name)
        return reason

    @staticmethod
    def seed_default_reasons(db: Session) -> int:
        """Insert any missing default reasons. Returns how many were added.

        Safe to call on every startup; existing names are left untouched.
        """
        existing = {name for (name,) in db.query(Reason.name).all()}
        added = 0
        for name, description in DEFAULT_REASONS:
            if name in existing:
                continue
            db.add(Reason(name=name, description=description, is_active=True))
            added += 1
        if added:
            db.flush()
            logger.info("Seeded %d default reasons", added)
        return added


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("name must not be empty", field="name")
    return cleaned
