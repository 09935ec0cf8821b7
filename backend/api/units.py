"""Unit (weight lot) API endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import (
    get_admin_principal,
    get_current_principal,
    partition_response_dict,
    unit_response_dict,
    verification_response_dict,
)
from database import get_db
from schemas.common import BalanceVerificationResponse
from schemas.unit import (
    PartitionCreate,
    PartitionCutResponse,
    PartitionResponse,
    UnitCreate,
    UnitNotesUpdate,
    UnitResponse,
)
from services.principal_service import Principal
from services.read_cache import read_cache
from services.unit_ledger_service import UnitLedgerService


router = APIRouter(prefix="/api/units", tags=["units"])


@router.get("", response_model=list[UnitResponse])
def list_units(
    product_id: str | None = Query(default=None),
    include_inactive: bool = Query(default=True),
    include_deleted: bool = Query(default=False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """List units, newest first. Served from the read cache when warm."""
    cache_key = f"units:list:{product_id}:{include_inactive}:{include_deleted}"
    return read_cache.get_or_set(
        cache_key,
        lambda: [
            unit_response_dict(u)
            for u in UnitLedgerService.list_units(
                db, product_id, include_inactive, include_deleted
            )
        ],
    )


@router.get("/{unit_id}", response_model=UnitResponse)
def get_unit(
    unit_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return unit_response_dict(UnitLedgerService.get_unit(db, unit_id))


@router.post("", response_model=UnitResponse, status_code=201)
def create_unit(
    data: UnitCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Register a new unit with its intake weight and reason."""
    unit = UnitLedgerService.create_unit(db, data, principal)
    return unit_response_dict(unit)


@router.put("/{unit_id}", response_model=UnitResponse)
def update_unit_notes(
    unit_id: str,
    data: UnitNotesUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Edit intake notes. Weights only change through partitions."""
    unit = UnitLedgerService.update_unit_notes(db, unit_id, data.intake_notes, principal)
    return unit_response_dict(unit)


@router.delete("/{unit_id}", response_model=UnitResponse)
def delete_unit(
    unit_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Soft-delete a unit. Its partitions are kept."""
    unit = UnitLedgerService.soft_delete_unit(db, unit_id, principal)
    return unit_response_dict(unit)


@router.post("/{unit_id}/partitions", response_model=PartitionCutResponse, status_code=201)
def add_partition(
    unit_id: str,
    data: PartitionCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Cut a partition from a unit. A weight of 0 cuts the remainder."""
    unit, partition = UnitLedgerService.add_partition(
        db,
        unit_id,
        data.weight,
        reason_id=data.reason_id,
        cut_notes=data.cut_notes,
        actor=principal,
    )
    return {
        "unit": unit_response_dict(unit),
        "partition": partition_response_dict(partition),
    }


@router.get("/{unit_id}/partitions", response_model=list[PartitionResponse])
def get_partition_history(
    unit_id: str,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Partitions of a unit, newest first."""
    partitions = UnitLedgerService.get_partition_history(db, unit_id, date_from, date_to)
    return [partition_response_dict(p) for p in partitions]


@router.get("/{unit_id}/verify", response_model=BalanceVerificationResponse)
def verify_unit_balance(
    unit_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Replay the unit's partitions against its stored weight."""
    result = UnitLedgerService.verify_unit_balance(db, unit_id)
    return verification_response_dict(unit_id, result)
