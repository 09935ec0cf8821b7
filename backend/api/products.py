"""Product API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_admin_principal, get_current_principal, product_response_dict
from database import get_db
from schemas.catalog import ProductCreate, ProductResponse, ProductUpdate
from services.catalog_service import CatalogService
from services.principal_service import Principal
from services.read_cache import read_cache
from services.unit_ledger_service import UNITS_TABLE

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=list[ProductResponse])
def list_products(
    product_type_id: str | None = Query(default=None),
    include_deleted: bool = Query(default=False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    products = CatalogService.list_products(db, product_type_id, include_deleted)
    return [product_response_dict(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return product_response_dict(CatalogService.get_product(db, product_id))


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    product = CatalogService.create_product(db, data, principal)
    db.commit()
    db.refresh(product)
    return product_response_dict(product)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    product = CatalogService.update_product(db, product_id, data, principal)
    db.commit()
    read_cache.invalidate(f"{UNITS_TABLE}:")
    db.refresh(product)
    return product_response_dict(product)


@router.delete("/{product_id}", response_model=ProductResponse)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Soft-delete a product with no active units."""
    product = CatalogService.delete_product(db, product_id, principal)
    db.commit()
    read_cache.invalidate(f"{UNITS_TABLE}:")
    db.refresh(product)
    return product_response_dict(product)
