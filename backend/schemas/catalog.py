"""Pydantic schemas for product types, products and element types."""

from decimal import Decimal

from pydantic import BaseModel, Field

from schemas.common import AuditFields


class ProductTypeCreate(BaseModel):
    """Schema for creating a product type."""

    name: str


class ProductTypeUpdate(BaseModel):
    """Schema for renaming a product type."""

    name: str | None = None


class ProductTypeResponse(AuditFields):
    """Schema for ProductType API response."""

    id: str
    name: str
    product_count: int = 0  # live products only


class ProductCreate(BaseModel):
    """Schema for creating a product."""

    name: str
    plu: str = Field(max_length=20)
    product_type_id: str
    sold_by_unit: bool = False
    price_per_kilo: Decimal | None = None


class ProductUpdate(BaseModel):
    """Schema for updating a product. The product type is fixed."""

    name: str | None = None
    plu: str | None = Field(default=None, max_length=20)
    sold_by_unit: bool | None = None
    price_per_kilo: Decimal | None = None


class ProductResponse(AuditFields):
    """Schema for Product API response."""

    id: str
    name: str
    plu: str
    sold_by_unit: bool
    price_per_kilo: Decimal | None = None
    product_type_id: str
    product_type_name: str | None = None


class ElementTypeCreate(BaseModel):
    """Schema for creating an element type."""

    name: str
    unit_of_measure: str | None = None
    category: str | None = None
    description: str | None = None


class ElementTypeUpdate(BaseModel):
    """Schema for updating an element type."""

    name: str | None = None
    unit_of_measure: str | None = None
    category: str | None = None
    description: str | None = None
    is_active: bool | None = None


class ElementTypeResponse(AuditFields):
    """Schema for ElementType API response."""

    id: str
    name: str
    unit_of_measure: str | None = None
    category: str | None = None
    description: str | None = None
    is_active: bool
