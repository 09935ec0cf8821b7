"""Element type API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import element_type_response_dict, get_admin_principal, get_current_principal
from database import get_db
from schemas.catalog import ElementTypeCreate, ElementTypeResponse, ElementTypeUpdate
from services.catalog_service import CatalogService
from services.principal_service import Principal
from services.read_cache import read_cache
from services.stock_ledger_service import STOCK_ELEMENTS_TABLE

router = APIRouter(prefix="/api/element-types", tags=["element-types"])


@router.get("", response_model=list[ElementTypeResponse])
def list_element_types(
    include_inactive: bool = Query(default=True),
    include_deleted: bool = Query(default=False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    element_types = CatalogService.list_element_types(db, include_inactive, include_deleted)
    return [element_type_response_dict(et) for et in element_types]


@router.get("/{element_type_id}", response_model=ElementTypeResponse)
def get_element_type(
    element_type_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return element_type_response_dict(CatalogService.get_element_type(db, element_type_id))


@router.post("", response_model=ElementTypeResponse, status_code=201)
def create_element_type(
    data: ElementTypeCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element_type = CatalogService.create_element_type(db, data, principal)
    db.commit()
    db.refresh(element_type)
    return element_type_response_dict(element_type)


@router.put("/{element_type_id}", response_model=ElementTypeResponse)
def update_element_type(
    element_type_id: str,
    data: ElementTypeUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    element_type = CatalogService.update_element_type(db, element_type_id, data, principal)
    db.commit()
    read_cache.invalidate(f"{STOCK_ELEMENTS_TABLE}:")
    db.refresh(element_type)
    return element_type_response_dict(element_type)


@router.delete("/{element_type_id}", response_model=ElementTypeResponse)
def delete_element_type(
    element_type_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Soft-delete an element type with no live stock elements."""
    element_type = CatalogService.delete_element_type(db, element_type_id, principal)
    db.commit()
    read_cache.invalidate(f"{STOCK_ELEMENTS_TABLE}:")
    db.refresh(element_type)
    return element_type_response_dict(element_type)
