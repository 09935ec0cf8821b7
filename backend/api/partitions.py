"""Partition API endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_admin_principal, get_current_principal, partition_response_dict
from database import get_db
from schemas.unit import PartitionResponse, PartitionUpdate
from services.principal_service import Principal
from services.unit_ledger_service import UnitLedgerService

router = APIRouter(prefix="/api/partitions", tags=["partitions"])


@router.get("", response_model=list[PartitionResponse])
def list_partitions(
    unit_id: str | None = Query(default=None),
    reason_id: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """List partitions across all units, newest first."""
    partitions = UnitLedgerService.list_partitions(db, unit_id, reason_id, date_from, date_to)
    return [partition_response_dict(p) for p in partitions]


@router.get("/{partition_id}", response_model=PartitionResponse)
def get_partition(
    partition_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return partition_response_dict(UnitLedgerService.get_partition(db, partition_id))


@router.put("/{partition_id}", response_model=PartitionResponse)
def update_partition(
    partition_id: str,
    data: PartitionUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Correct a partition's notes or reason. Fields left out are unchanged."""
    partition = UnitLedgerService.update_partition_metadata(db, partition_id, data, principal)
    return partition_response_dict(partition)
