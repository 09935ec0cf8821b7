"""Weight ledger for units and their partitions.

A Unit is registered with an initial weight and then cut into Partitions.
Each cut subtracts from ``current_weight`` and appends a partition that
records the balance before and after, inside one locked transaction (see
``ledger_transaction.run_locked``). A unit deactivates exactly when its
remaining weight reaches zero and never reactivates.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models import Partition, Product, Unit, generate_uuid
from schemas.unit import PartitionUpdate, UnitCreate
from services.audit_service import AuditService
from services.balance import ZERO, ReplayResult, quantize, replay, require_positive
from services.exceptions import (
    AlreadyDepletedError,
    InactiveEntityError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from services.ledger_transaction import run_locked
from services.principal_service import Principal
from services.reason_service import ReasonService

logger = logging.getLogger(__name__)

UNITS_TABLE = "units"
PARTITIONS_TABLE = "partitions"
PRODUCTS_TABLE = "products"


def _lock_unit(db: Session, unit_id: str) -> Unit:
    """Re-read a unit inside the locked transaction, bypassing the identity map."""
    unit = (
        db.query(Unit)
        .filter(Unit.id == unit_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if unit is None:
        raise NotFoundError("Unit", unit_id)
    return unit


def _day_bounds(date_from: date | None, date_to: date | None):
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    return start, end


class UnitLedgerService:
    """Creates units, cuts partitions and answers unit/partition queries."""

    # --- Ledger operations ---

    @staticmethod
    def create_unit(db: Session, data: UnitCreate, actor: Principal | None) -> Unit:
        """Register a unit with its intake weight and reason.

        Raises:
            ValidationError: Weight not positive, or reason missing or unknown.
            NotFoundError: Product missing or soft-deleted.
        """
        initial_weight = require_positive(data.initial_weight, "initial_weight")
        if not data.reason_id:
            raise ValidationError("An intake reason is required", field="reason_id")

        unit_id = generate_uuid()

        def work() -> Unit:
            try:
                ReasonService.resolve_reason(db, data.reason_id)
            except NotFoundError:
                raise ValidationError(
                    f"Unknown intake reason: {data.reason_id}", field="reason_id"
                ) from None
            product = (
                db.query(Product)
                .filter(Product.id == data.product_id, Product.deleted_at.is_(None))
                .with_for_update()
                .populate_existing()
                .first()
            )
            if product is None:
                raise NotFoundError("Product", data.product_id)

            unit = Unit(
                id=unit_id,
                product_id=data.product_id,
                initial_weight=initial_weight,
                current_weight=initial_weight,
                is_active=True,
                intake_notes=data.intake_notes,
                reason_id=data.reason_id,
            )
            AuditService.stamp_created(unit, actor)
            db.add(unit)
            db.flush()
            return unit

        unit = run_locked(
            db, UNITS_TABLE, unit_id, "create_unit", work, actor,
            parent_keys=[(PRODUCTS_TABLE, data.product_id)],
        )
        logger.info(
            "Created unit %s: %s g of product %s (actor=%s)",
            unit.id, initial_weight, data.product_id, AuditService.actor_id(actor),
        )
        return unit

    @staticmethod
    def add_partition(
        db: Session,
        unit_id: str,
        requested_weight,
        reason_id: str | None = None,
        cut_notes: str | None = None,
        actor: Principal | None = None,
    ) -> tuple[Unit, Partition]:
        """Cut ``requested_weight`` grams from a unit.

        A requested weight of 0 cuts whatever remains. The unit is
        deactivated when the cut leaves it at exactly 0.

        Returns:
            The updated unit and the new partition.

        Raises:
            NotFoundError: Unit or (optional) reason does not exist.
            EntityDeletedError: Unit is soft-deleted.
            InactiveEntityError: Unit is already depleted.
            ValidationError: Requested weight is negative or not a number.
            AlreadyDepletedError: "Cut remainder" on a zero balance.
            InsufficientBalanceError: Requested weight exceeds the balance.
        """

        def work() -> tuple[Unit, Partition]:
            unit = _lock_unit(db, unit_id)
            AuditService.ensure_live(unit, "Unit")
            if not unit.is_active:
                raise InactiveEntityError(
                    f"Unit {unit_id} is depleted and accepts no further cuts",
                    unit_id=unit_id,
                )

            requested = quantize(requested_weight, "weight")
            if requested < ZERO:
                raise ValidationError(
                    "weight must be 0 or greater", field="weight", value=str(requested)
                )

            current = quantize(unit.current_weight, "current_weight")
            if requested == ZERO:
                if current == ZERO:
                    raise AlreadyDepletedError(
                        f"Unit {unit_id} has no remaining weight", unit_id=unit_id
                    )
                effective = current
            else:
                effective = requested

            if effective > current:
                raise InsufficientBalanceError(
                    f"Insufficient weight on unit {unit_id}: "
                    f"requested {effective}, available {current}",
                    unit_id=unit_id,
                    requested=str(effective),
                    available=str(current),
                )

            if reason_id:
                ReasonService.resolve_reason(db, reason_id)

            last_sequence = (
                db.query(func.max(Partition.sequence))
                .filter(Partition.unit_id == unit_id)
                .scalar()
            )
            remaining = current - effective
            partition = Partition(
                unit_id=unit_id,
                sequence=(last_sequence or 0) + 1,
                weight=effective,
                balance_before=current,
                balance_after=remaining,
                cut_notes=cut_notes,
                reason_id=reason_id,
            )
            AuditService.stamp_created(partition, actor)
            db.add(partition)

            unit.current_weight = remaining
            if remaining == ZERO:
                unit.is_active = False
            db.flush()
            return unit, partition

        unit, partition = run_locked(db, UNITS_TABLE, unit_id, "add_partition", work, actor)
        logger.info(
            "Cut %s g from unit %s: %s -> %s (partition %s, actor=%s)",
            partition.weight, unit_id, partition.balance_before, partition.balance_after,
            partition.sequence, AuditService.actor_id(actor),
        )
        if not unit.is_active:
            logger.info("Unit %s depleted", unit_id)
        return unit, partition

    @staticmethod
    def update_partition_metadata(
        db: Session, partition_id: str, data: PartitionUpdate, actor: Principal | None
    ) -> Partition:
        """Correct a partition's notes and/or reason.

        Only fields present in ``data`` are applied; an explicit None
        clears the field. Balances are never touched. Re-applying the same
        values writes nothing.
        """
        fields = data.model_fields_set

        def work() -> Partition:
            partition = db.query(Partition).filter_by(id=partition_id).first()
            if partition is None:
                raise NotFoundError("Partition", partition_id)

            changed = False
            if "reason_id" in fields and data.reason_id != partition.reason_id:
                if data.reason_id is not None:
                    ReasonService.resolve_reason(db, data.reason_id)
                partition.reason_id = data.reason_id
                changed = True
            if "cut_notes" in fields and data.cut_notes != partition.cut_notes:
                partition.cut_notes = data.cut_notes
                changed = True

            if changed:
                AuditService.stamp_modified(partition, actor)
                db.flush()
                logger.info(
                    "Updated partition %s metadata (actor=%s)",
                    partition_id, AuditService.actor_id(actor),
                )
            return partition

        return run_locked(
            db, PARTITIONS_TABLE, partition_id, "update_partition_metadata", work, actor
        )

    @staticmethod
    def update_unit_notes(
        db: Session, unit_id: str, intake_notes: str | None, actor: Principal | None
    ) -> Unit:
        def work() -> Unit:
            unit = _lock_unit(db, unit_id)
            AuditService.ensure_live(unit, "Unit")
            if unit.intake_notes != intake_notes:
                unit.intake_notes = intake_notes
                AuditService.stamp_modified(unit, actor)
                db.flush()
            return unit

        return run_locked(db, UNITS_TABLE, unit_id, "update_unit_notes", work, actor)

    @staticmethod
    def soft_delete_unit(db: Session, unit_id: str, actor: Principal | None) -> Unit:
        """Soft-delete a unit. Its balance freezes; partitions are kept."""

        def work() -> Unit:
            unit = _lock_unit(db, unit_id)
            AuditService.soft_delete(unit, actor, "Unit")
            db.flush()
            return unit

        return run_locked(db, UNITS_TABLE, unit_id, "soft_delete_unit", work, actor)

    # --- Queries ---

    @staticmethod
    def get_unit(db: Session, unit_id: str, include_deleted: bool = True) -> Unit:
        return AuditService.get(db, Unit, unit_id, "Unit", include_deleted)

    @staticmethod
    def list_units(
        db: Session,
        product_id: str | None = None,
        include_inactive: bool = True,
        include_deleted: bool = False,
    ) -> list[Unit]:
        """List units, newest first."""
        query = AuditService.query(db, Unit, include_deleted).options(
            joinedload(Unit.product), joinedload(Unit.reason)
        )
        if product_id:
            query = query.filter(Unit.product_id == product_id)
        if not include_inactive:
            query = query.filter(Unit.is_active.is_(True))
        return query.order_by(Unit.created_at.desc()).all()

    @staticmethod
    def get_partition(db: Session, partition_id: str) -> Partition:
        partition = db.query(Partition).filter_by(id=partition_id).first()
        if partition is None:
            raise NotFoundError("Partition", partition_id)
        return partition

    @staticmethod
    def list_partitions(
        db: Session,
        unit_id: str | None = None,
        reason_id: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Partition]:
        """List partitions across units, newest first."""
        query = db.query(Partition).options(joinedload(Partition.reason))
        if unit_id:
            query = query.filter(Partition.unit_id == unit_id)
        if reason_id:
            query = query.filter(Partition.reason_id == reason_id)
        start, end = _day_bounds(date_from, date_to)
        if start:
            query = query.filter(Partition.created_at >= start)
        if end:
            query = query.filter(Partition.created_at < end)
        return query.order_by(Partition.created_at.desc(), Partition.sequence.desc()).all()

    @staticmethod
    def get_partition_history(
        db: Session,
        unit_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Partition]:
        """Partitions of one unit, newest first. Deleted units stay addressable."""
        UnitLedgerService.get_unit(db, unit_id)
        return UnitLedgerService.list_partitions(
            db, unit_id=unit_id, date_from=date_from, date_to=date_to
        )

    @staticmethod
    def verify_unit_balance(db: Session, unit_id: str) -> ReplayResult:
        """Replay a unit's partitions from its initial weight."""
        unit = UnitLedgerService.get_unit(db, unit_id)
        partitions = (
            db.query(Partition)
            .filter(Partition.unit_id == unit_id)
            .order_by(Partition.sequence.asc())
            .all()
        )
        result = replay(Decimal(unit.initial_weight), partitions, unit.current_weight)
        if not result.is_consistent:
            logger.warning(
                "Unit %s balance mismatch: stored %s, replayed %s, broken links %s",
                unit_id, result.stored_balance, result.replayed_balance, result.broken_links,
            )
        return result
