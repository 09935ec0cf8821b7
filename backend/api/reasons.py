"""Reason catalog API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_admin_principal, get_current_principal
from database import get_db
from schemas.reason import ReasonCreate, ReasonResponse, ReasonUpdate
from services.principal_service import Principal
from services.read_cache import read_cache
from services.reason_service import ReasonService
from services.unit_ledger_service import UNITS_TABLE

router = APIRouter(prefix="/api/reasons", tags=["reasons"])


@router.get("", response_model=list[ReasonResponse])
def list_reasons(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """List reasons, active ones only by default."""
    return ReasonService.list_reasons(db, include_inactive)


@router.get("/{reason_id}", response_model=ReasonResponse)
def get_reason(
    reason_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ReasonService.resolve_reason(db, reason_id)


@router.post("", response_model=ReasonResponse, status_code=201)
def create_reason(
    data: ReasonCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Create a reason (admin only)."""
    reason = ReasonService.create_reason(db, data.name, data.description)
    db.commit()
    db.refresh(reason)
    return reason


@router.put("/{reason_id}", response_model=ReasonResponse)
def update_reason(
    reason_id: str,
    data: ReasonUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Update a reason (admin only)."""
    reason = ReasonService.update_reason(
        db, reason_id, name=data.name, description=data.description, is_active=data.is_active
    )
    db.commit()
    read_cache.invalidate(f"{UNITS_TABLE}:")
    db.refresh(reason)
    return reason


@router.delete("/{reason_id}", response_model=ReasonResponse)
def deactivate_reason(
    reason_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Deactivate a reason (admin only). Reasons are never hard-deleted."""
    reason = ReasonService.deactivate_reason(db, reason_id)
    db.commit()
    db.refresh(reason)
    return reason
