"""Quantity ledger for stock elements.

Every change to ``StockElement.current_quantity`` is a StockMovement
(ingress, egress or adjustment) written in the same locked transaction as
the balance. Replaying an element's movements in sequence order from zero
reproduces its stored quantity.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models import ElementType, MovementKind, StockElement, StockMovement, generate_uuid
from models.utils import utc_now
from schemas.stock import StockElementCreate, StockElementUpdate
from services import balance
from services.audit_service import AuditService
from services.balance import ZERO, ReplayResult, quantize, replay, require_non_negative, require_positive
from services.exceptions import (
    DuplicateNameError,
    InsufficientBalanceError,
    NegativeResultError,
    NotFoundError,
    ValidationError,
)
from services.ledger_transaction import run_locked
from services.principal_service import Principal
from services.reason_service import ReasonService

logger = logging.getLogger(__name__)

STOCK_ELEMENTS_TABLE = "stock_elements"
ELEMENT_TYPES_TABLE = "element_types"


def _lock_element(db: Session, element_id: str) -> StockElement:
    """Re-read an element inside the locked transaction, bypassing the identity map."""
    element = (
        db.query(StockElement)
        .filter(StockElement.id == element_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if element is None:
        raise NotFoundError("StockElement", element_id)
    return element


def _name_taken(db: Session, name: str, exclude_id: str | None = None) -> bool:
    """Names are unique across live and soft-deleted elements."""
    query = db.query(StockElement.id).filter(func.lower(StockElement.name) == name.lower())
    if exclude_id:
        query = query.filter(StockElement.id != exclude_id)
    return query.first() is not None


def _append_movement(
    db: Session,
    element: StockElement,
    kind: MovementKind,
    amount: Decimal,
    balance_before: Decimal,
    balance_after: Decimal,
    actor: Principal | None,
    movement_date: date | None = None,
    **fields,
) -> StockMovement:
    last_sequence = (
        db.query(func.max(StockMovement.sequence))
        .filter(StockMovement.stock_element_id == element.id)
        .scalar()
    )
    movement = StockMovement(
        stock_element_id=element.id,
        sequence=(last_sequence or 0) + 1,
        kind=kind.value,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        movement_date=movement_date or utc_now().date(),
        actor_id=AuditService.actor_id(actor),
        **fields,
    )
    db.add(movement)
    return movement


class StockLedgerService:
    """Creates stock elements, records movements and answers stock queries."""

    # --- Ledger operations ---

    @staticmethod
    def create_element(
        db: Session, data: StockElementCreate, actor: Principal | None
    ) -> StockElement:
        """Create a stock element and, for a non-zero opening quantity, its
        genesis ingress movement.

        Raises:
            ValidationError: Empty name or negative quantities.
            DuplicateNameError: The name exists, deleted elements included.
            NotFoundError: The element type is missing or deleted.
        """
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("name must not be empty", field="name")
        initial = require_non_negative(data.initial_quantity, "initial_quantity")
        minimum = require_non_negative(data.minimum_quantity, "minimum_quantity")

        element_id = generate_uuid()

        def work() -> StockElement:
            if _name_taken(db, name):
                raise DuplicateNameError(f"Stock element already exists: {name}", name=name)
            if data.element_type_id:
                element_type = (
                    db.query(ElementType)
                    .filter(
                        ElementType.id == data.element_type_id,
                        ElementType.deleted_at.is_(None),
                    )
                    .with_for_update()
                    .populate_existing()
                    .first()
                )
                if element_type is None:
                    raise NotFoundError("ElementType", data.element_type_id)

            element = StockElement(
                id=element_id,
                name=name,
                description=data.description,
                element_type_id=data.element_type_id,
                current_quantity=initial,
                minimum_quantity=minimum,
                total_ingested=initial,
                location=data.location,
                notes=data.notes,
                is_active=True,
            )
            AuditService.stamp_created(element, actor)
            db.add(element)
            if initial > ZERO:
                _append_movement(
                    db, element, MovementKind.INGRESS, initial, ZERO, initial, actor,
                    notes="Opening balance",
                )
            try:
                db.flush()
            except IntegrityError:
                # a concurrent create won the unique name
                raise DuplicateNameError(
                    f"Stock element already exists: {name}", name=name
                ) from None
            return element

        parent_keys = [(ELEMENT_TYPES_TABLE, data.element_type_id)] if data.element_type_id else []
        element = run_locked(
            db, STOCK_ELEMENTS_TABLE, element_id, "create_element", work, actor,
            parent_keys=parent_keys,
        )
        logger.info(
            "Created stock element %s (%s) with %s on hand (actor=%s)",
            element_id, name, initial, AuditService.actor_id(actor),
        )
        return element

    @staticmethod
    def register_ingress(
        db: Session,
        element_id: str,
        amount,
        notes: str | None = None,
        reference_document: str | None = None,
        movement_date: date | None = None,
        actor: Principal | None = None,
    ) -> tuple[StockElement, StockMovement]:
        """Add ``amount`` to an element. Reactivates a depleted element."""

        def work() -> tuple[StockElement, StockMovement]:
            element = _lock_element(db, element_id)
            AuditService.ensure_live(element, "StockElement")
            quantity = require_positive(amount)

            before = quantize(element.current_quantity)
            after = before + quantity
            movement = _append_movement(
                db, element, MovementKind.INGRESS, quantity, before, after, actor,
                movement_date=movement_date,
                notes=notes,
                reference_document=reference_document,
            )
            element.current_quantity = after
            element.total_ingested = quantize(element.total_ingested) + quantity
            element.is_active = True
            db.flush()
            return element, movement

        element, movement = run_locked(
            db, STOCK_ELEMENTS_TABLE, element_id, "register_ingress", work, actor
        )
        _log_movement(element_id, movement, actor)
        return element, movement

    @staticmethod
    def register_egress(
        db: Session,
        element_id: str,
        amount,
        reason_id: str | None,
        notes: str | None = None,
        reference_document: str | None = None,
        movement_date: date | None = None,
        actor: Principal | None = None,
    ) -> tuple[StockElement, StockMovement]:
        """Remove ``amount`` from an element for the given reason.

        Raises:
            ValidationError: Amount not positive or reason missing.
            NotFoundError: Element or reason does not exist.
            EntityDeletedError: Element is soft-deleted.
            InsufficientBalanceError: Amount exceeds the quantity on hand.
        """
        if not reason_id:
            raise ValidationError("A reason is required for egress", field="reason_id")

        def work() -> tuple[StockElement, StockMovement]:
            element = _lock_element(db, element_id)
            AuditService.ensure_live(element, "StockElement")
            quantity = require_positive(amount)
            ReasonService.resolve_reason(db, reason_id)

            before = quantize(element.current_quantity)
            if quantity > before:
                raise InsufficientBalanceError(
                    f"Insufficient stock for {element.name}: "
                    f"requested {quantity}, available {before}",
                    element_id=element_id,
                    requested=str(quantity),
                    available=str(before),
                )
            after = before - quantity
            movement = _append_movement(
                db, element, MovementKind.EGRESS, quantity, before, after, actor,
                movement_date=movement_date,
                reason_id=reason_id,
                notes=notes,
                reference_document=reference_document,
            )
            element.current_quantity = after
            if after == ZERO:
                element.is_active = False
            db.flush()
            return element, movement

        element, movement = run_locked(
            db, STOCK_ELEMENTS_TABLE, element_id, "register_egress", work, actor
        )
        _log_movement(element_id, movement, actor)
        return element, movement

    @staticmethod
    def register_adjustment(
        db: Session,
        element_id: str,
        signed_delta,
        reason_text: str,
        notes: str | None = None,
        movement_date: date | None = None,
        actor: Principal | None = None,
    ) -> tuple[StockElement, StockMovement]:
        """Correct an element's quantity by ``signed_delta``.

        The movement stores ``|delta|``; its direction follows from the
        before/after pair. Landing on 0 deactivates the element, but an
        adjustment never reactivates one.

        Raises:
            ValidationError: Delta is 0 or reason text is empty.
            NegativeResultError: The result would be below 0.
        """
        delta = quantize(signed_delta, "delta")
        if delta == ZERO:
            raise ValidationError("delta must not be 0", field="delta")
        reason_text = (reason_text or "").strip()
        if not reason_text:
            raise ValidationError("An adjustment reason is required", field="reason_text")

        def work() -> tuple[StockElement, StockMovement]:
            element = _lock_element(db, element_id)
            AuditService.ensure_live(element, "StockElement")

            before = quantize(element.current_quantity)
            after = before + delta
            if after < ZERO:
                raise NegativeResultError(
                    f"Adjustment of {delta} would leave {element.name} at {after}",
                    element_id=element_id,
                    delta=str(delta),
                    available=str(before),
                )
            movement = _append_movement(
                db, element, MovementKind.ADJUSTMENT, abs(delta), before, after, actor,
                movement_date=movement_date,
                adjustment_reason=reason_text,
                notes=notes,
            )
            element.current_quantity = after
            if delta > ZERO:
                element.total_ingested = quantize(element.total_ingested) + delta
            if after == ZERO:
                element.is_active = False
            db.flush()
            return element, movement

        element, movement = run_locked(
            db, STOCK_ELEMENTS_TABLE, element_id, "register_adjustment", work, actor
        )
        _log_movement(element_id, movement, actor)
        return element, movement

    @staticmethod
    def update_element(
        db: Session, element_id: str, data: StockElementUpdate, actor: Principal | None
    ) -> StockElement:
        """Update descriptive fields. Quantities only change through movements."""

        def work() -> StockElement:
            element = _lock_element(db, element_id)
            AuditService.ensure_live(element, "StockElement")

            if data.name is not None:
                name = data.name.strip()
                if not name:
                    raise ValidationError("name must not be empty", field="name")
                if _name_taken(db, name, exclude_id=element_id):
                    raise DuplicateNameError(
                        f"Stock element already exists: {name}", name=name
                    )
                element.name = name
            if data.description is not None:
                element.description = data.description
            if data.minimum_quantity is not None:
                element.minimum_quantity = require_non_negative(
                    data.minimum_quantity, "minimum_quantity"
                )
            if data.location is not None:
                element.location = data.location
            if data.notes is not None:
                element.notes = data.notes

            AuditService.stamp_modified(element, actor)
            db.flush()
            return element

        return run_locked(db, STOCK_ELEMENTS_TABLE, element_id, "update_element", work, actor)

    @staticmethod
    def soft_delete_element(
        db: Session, element_id: str, actor: Principal | None
    ) -> StockElement:
        """Soft-delete an element. Its quantity and movements are kept as-is."""

        def work() -> StockElement:
            element = _lock_element(db, element_id)
            AuditService.soft_delete(element, actor, "StockElement")
            db.flush()
            return element

        return run_locked(
            db, STOCK_ELEMENTS_TABLE, element_id, "soft_delete_element", work, actor
        )

    # --- Queries ---

    @staticmethod
    def is_below_threshold(element: StockElement) -> bool:
        return balance.is_below_threshold(
            quantize(element.current_quantity), quantize(element.minimum_quantity)
        )

    @staticmethod
    def get_element(db: Session, element_id: str, include_deleted: bool = True) -> StockElement:
        return AuditService.get(db, StockElement, element_id, "StockElement", include_deleted)

    @staticmethod
    def list_elements(
        db: Session,
        include_inactive: bool = True,
        include_deleted: bool = False,
        element_type_id: str | None = None,
    ) -> list[StockElement]:
        query = AuditService.query(db, StockElement, include_deleted).options(
            joinedload(StockElement.element_type)
        )
        if not include_inactive:
            query = query.filter(StockElement.is_active.is_(True))
        if element_type_id:
            query = query.filter(StockElement.element_type_id == element_type_id)
        return query.order_by(StockElement.name.asc()).all()

    @staticmethod
    def get_low_stock_elements(db: Session) -> list[StockElement]:
        """Live elements at or below a configured minimum, lowest first."""
        return (
            AuditService.query(db, StockElement)
            .options(joinedload(StockElement.element_type))
            .filter(
                StockElement.minimum_quantity > 0,
                StockElement.current_quantity <= StockElement.minimum_quantity,
            )
            .order_by(StockElement.current_quantity.asc(), StockElement.name.asc())
            .all()
        )

    @staticmethod
    def get_movement_history(
        db: Session,
        element_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        kind: MovementKind | None = None,
    ) -> list[StockMovement]:
        """Movements of one element, newest first.

        Date filters apply to ``movement_date`` (inclusive). Soft-deleted
        elements stay addressable.
        """
        StockLedgerService.get_element(db, element_id)
        query = (
            db.query(StockMovement)
            .options(joinedload(StockMovement.reason))
            .filter(StockMovement.stock_element_id == element_id)
        )
        if date_from:
            query = query.filter(StockMovement.movement_date >= date_from)
        if date_to:
            query = query.filter(StockMovement.movement_date <= date_to)
        if kind:
            query = query.filter(StockMovement.kind == MovementKind(kind).value)
        return query.order_by(
            StockMovement.recorded_at.desc(), StockMovement.sequence.desc()
        ).all()

    @staticmethod
    def verify_element_balance(db: Session, element_id: str) -> ReplayResult:
        """Replay an element's movements from zero against its stored quantity."""
        element = StockLedgerService.get_element(db, element_id)
        movements = (
            db.query(StockMovement)
            .filter(StockMovement.stock_element_id == element_id)
            .order_by(StockMovement.sequence.asc())
            .all()
        )
        result = replay(ZERO, movements, element.current_quantity)
        if not result.is_consistent:
            logger.warning(
                "Stock element %s balance mismatch: stored %s, replayed %s, broken links %s",
                element_id, result.stored_balance, result.replayed_balance, result.broken_links,
            )
        return result


def _log_movement(element_id: str, movement: StockMovement, actor: Principal | None) -> None:
    logger.info(
        "Recorded %s of %s on stock element %s: %s -> %s (actor=%s)",
        movement.kind, movement.amount, element_id,
        movement.balance_before, movement.balance_after, AuditService.actor_id(actor),
    )
