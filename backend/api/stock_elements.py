"""Stock element (quantity ledger) API endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import (
    get_admin_principal,
    get_current_principal,
    movement_response_dict,
    stock_element_response_dict,
    verification_response_dict,
)
from database import get_db
from models import MovementKind
from schemas.common import BalanceVerificationResponse
from schemas.stock import (
    AdjustmentRequest,
    EgressRequest,
    IngressRequest,
    MovementResultResponse,
    StockElementCreate,
    StockElementResponse,
    StockElementUpdate,
    StockMovementResponse,
)
from services.principal_service import Principal
from services.read_cache import read_cache
from services.stock_ledger_service import StockLedgerService

router = APIRouter(prefix="/api/stock-elements", tags=["stock-elements"])


def _movement_result(element, movement) -> dict:
    return {
        "element": stock_element_response_dict(element),
        "movement": movement_response_dict(movement),
    }


@router.get("", response_model=list[StockElementResponse])
def list_stock_elements(
    include_inactive: bool = Query(default=True),
    include_deleted: bool = Query(default=False),
    element_type_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    cache_key = f"stock_elements:list:{include_inactive}:{include_deleted}:{element_type_id}"
    return read_cache.get_or_set(
        cache_key,
        lambda: [
            stock_element_response_dict(e)
            for e in StockLedgerService.list_elements(
                db, include_inactive, include_deleted, element_type_id
            )
        ],
    )


@router.get("/low-stock", response_model=list[StockElementResponse])
def get_low_stock(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Live elements at or below their minimum quantity."""
    return read_cache.get_or_set(
        "stock_elements:low-stock",
        lambda: [
            stock_element_response_dict(e)
            for e in StockLedgerService.get_low_stock_elements(db)
        ],
    )


@router.get("/{element_id}", response_model=StockElementResponse)
def get_stock_element(
    element_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return stock_element_response_dict(StockLedgerService.get_element(db, element_id))


@router.post("", response_model=StockElementResponse, status_code=201)
def create_stock_element(
    data: StockElementCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element = StockLedgerService.create_element(db, data, principal)
    return stock_element_response_dict(element)


@router.put("/{element_id}", response_model=StockElementResponse)
def update_stock_element(
    element_id: str,
    data: StockElementUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element = StockLedgerService.update_element(db, element_id, data, principal)
    return stock_element_response_dict(element)


@router.delete("/{element_id}", response_model=StockElementResponse)
def delete_stock_element(
    element_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element = StockLedgerService.soft_delete_element(db, element_id, principal)
    return stock_element_response_dict(element)


@router.post("/{element_id}/ingress", response_model=MovementResultResponse, status_code=201)
def register_ingress(
    element_id: str,
    data: IngressRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element, movement = StockLedgerService.register_ingress(
        db,
        element_id,
        data.amount,
        notes=data.notes,
        reference_document=data.reference_document,
        movement_date=data.movement_date,
        actor=principal,
    )
    return _movement_result(element, movement)


@router.post("/{element_id}/egress", response_model=MovementResultResponse, status_code=201)
def register_egress(
    element_id: str,
    data: EgressRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element, movement = StockLedgerService.register_egress(
        db,
        element_id,
        data.amount,
        data.reason_id,
        notes=data.notes,
        reference_document=data.reference_document,
        movement_date=data.movement_date,
        actor=principal,
    )
    return _movement_result(element, movement)


@router.post("/{element_id}/adjustment", response_model=MovementResultResponse, status_code=201)
def register_adjustment(
    element_id: str,
    data: AdjustmentRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element, movement = StockLedgerService.register_adjustment(
        db,
        element_id,
        data.delta,
        data.reason_text,
        notes=data.notes,
        movement_date=data.movement_date,
        actor=principal,
    )
    return _movement_result(element, movement)


@router.get("/{element_id}/movements", response_model=list[StockMovementResponse])
def get_movement_history(
    element_id: str,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    kind: MovementKind | None = Query(default=None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Movements of an element, newest first."""
    movements = StockLedgerService.get_movement_history(db, element_id, date_from, date_to, kind)
    return [movement_response_dict(m) for m in movements]


@router.get("/{element_id}/verify", response_model=BalanceVerificationResponse)
def verify_element_balance(
    element_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = StockLedgerService.verify_element_balance(db, element_id)
    return verification_response_dict(element_id, result)
