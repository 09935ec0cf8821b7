"""Product type API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_admin_principal, get_current_principal, product_type_response_dict
from database import get_db
from schemas.catalog import ProductTypeCreate, ProductTypeResponse, ProductTypeUpdate
from services.catalog_service import CatalogService
from services.principal_service import Principal

router = APIRouter(prefix="/api/product-types", tags=["product-types"])


@router.get("", response_model=list[ProductTypeResponse])
def list_product_types(
    include_deleted: bool = Query(default=False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    product_types = CatalogService.list_product_types(db, include_deleted)
    return [product_type_response_dict(pt) for pt in product_types]


@router.get("/{product_type_id}", response_model=ProductTypeResponse)
def get_product_type(
    product_type_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return product_type_response_dict(CatalogService.get_product_type(db, product_type_id))


@router.post("", response_model=ProductTypeResponse, status_code=201)
def create_product_type(
    data: ProductTypeCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    product_type = CatalogService.create_product_type(db, data, principal)
    db.commit()
    db.refresh(product_type)
    return product_type_response_dict(product_type)


@router.put("/{product_type_id}", response_model=ProductTypeResponse)
def update_product_type(
    product_type_id: str,
    data: ProductTypeUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    product_type = CatalogService.update_product_type(db, product_type_id, data, principal)
    db.commit()
    db.refresh(product_type)
    return product_type_response_dict(product_type)


@router.delete("/{product_type_id}", response_model=ProductTypeResponse)
def delete_product_type(
    product_type_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_principal),
):
    """Soft-delete a product type with no live products."""
    product_type = CatalogService.delete_product_type(db, product_type_id, principal)
    db.commit()
    db.refresh(product_type)
    return product_type_response_dict(product_type)
