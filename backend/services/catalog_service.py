"""Service for the product and element-type catalogs.

Catalog rows carry audit fields and are soft-deleted. Names (and product
PLUs) stay unique across live and deleted rows, matching the database
constraints. Deleting a catalog entry that still has live dependents is
refused with ``DependencyExistsError``.
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models import ElementType, Product, ProductType, StockElement, Unit, generate_uuid
from schemas.catalog import (
    ElementTypeCreate,
    ElementTypeUpdate,
    ProductCreate,
    ProductTypeCreate,
    ProductTypeUpdate,
    ProductUpdate,
)
from services.audit_service import AuditService
from services.balance import require_non_negative
from services.exceptions import DuplicateNameError, NotFoundError, ValidationError
from services.ledger_transaction import run_locked
from services.principal_service import Principal

logger = logging.getLogger(__name__)

PRODUCT_TYPES_TABLE = "product_types"
PRODUCTS_TABLE = "products"
ELEMENT_TYPES_TABLE = "element_types"


def _required_text(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be empty", field=field)
    return cleaned


def _ensure_unique(db: Session, column, value: str, exclude_id: str | None, label: str) -> None:
    """Case-insensitive uniqueness check across live and deleted rows."""
    query = db.query(column.class_).filter(func.lower(column) == value.lower())
    if exclude_id:
        query = query.filter(column.class_.id != exclude_id)
    if query.first():
        raise DuplicateNameError(f"{label} already exists: {value}", value=value)


def _lock_live(
    db: Session, model, entity_id: str, resource: str, missing_if_deleted: bool = False
):
    """Read a catalog row ``FOR UPDATE`` and require it to be live.

    A deleted row raises ``EntityDeletedError``, or ``NotFoundError`` when
    ``missing_if_deleted`` is set (parents referenced by a new child).
    """
    query = db.query(model).filter(model.id == entity_id)
    if missing_if_deleted:
        query = query.filter(model.deleted_at.is_(None))
    entity = (
        query
        .with_for_update()
        .populate_existing()
        .first()
    )
    if entity is None:
        raise NotFoundError(resource, entity_id)
    AuditService.ensure_live(entity, resource)
    return entity


class CatalogService:
    """CRUD for product types, products and element types."""

    # --- Product types ---

    @staticmethod
    def list_product_types(db: Session, include_deleted: bool = False) -> list[ProductType]:
        return (
            AuditService.query(db, ProductType, include_deleted)
            .order_by(ProductType.name.asc())
            .all()
        )

    @staticmethod
    def get_product_type(db: Session, product_type_id: str) -> ProductType:
        return AuditService.get(db, ProductType, product_type_id, "ProductType")

    @staticmethod
    def create_product_type(
        db: Session, data: ProductTypeCreate, actor: Principal | None
    ) -> ProductType:
        name = _required_text(data.name, "name")
        _ensure_unique(db, ProductType.name, name, None, "Product type")

        product_type = ProductType(name=name)
        AuditService.stamp_created(product_type, actor)
        db.add(product_type)
        db.flush()
        logger.info("Created product type: %s", name)
        return product_type

    @staticmethod
    def update_product_type(
        db: Session, product_type_id: str, data: ProductTypeUpdate, actor: Principal | None
    ) -> ProductType:
        product_type = CatalogService.get_product_type(db, product_type_id)
        AuditService.ensure_live(product_type, "ProductType")

        if data.name is not None:
            name = _required_text(data.name, "name")
            _ensure_unique(db, ProductType.name, name, product_type_id, "Product type")
            product_type.name = name

        AuditService.stamp_modified(product_type, actor)
        db.flush()
        logger.info("Updated product type: %s", product_type_id)
        return product_type

    @staticmethod
    def count_live_products(db: Session, product_type_id: str) -> int:
        return (
            AuditService.query(db, Product)
            .filter(Product.product_type_id == product_type_id)
            .count()
        )

    @staticmethod
    def delete_product_type(
        db: Session, product_type_id: str, actor: Principal | None
    ) -> ProductType:
        """Soft-delete a product type that has no live products."""

        def work() -> ProductType:
            product_type = _lock_live(db, ProductType, product_type_id, "ProductType")
            AuditService.ensure_no_dependents(
                CatalogService.count_live_products(db, product_type_id),
                "ProductType",
                product_type_id,
                "live product(s)",
            )
            AuditService.soft_delete(product_type, actor, "ProductType")
            db.flush()
            return product_type

        return run_locked(
            db, PRODUCT_TYPES_TABLE, product_type_id, "delete_product_type", work, actor
        )

    # --- Products ---

    @staticmethod
    def list_products(
        db: Session, product_type_id: str | None = None, include_deleted: bool = False
    ) -> list[Product]:
        query = AuditService.query(db, Product, include_deleted).options(
            joinedload(Product.product_type)
        )
        if product_type_id:
            query = query.filter(Product.product_type_id == product_type_id)
        return query.order_by(Product.name.asc()).all()

    @staticmethod
    def get_product(db: Session, product_id: str) -> Product:
        return AuditService.get(db, Product, product_id, "Product")

    @staticmethod
    def create_product(db: Session, data: ProductCreate, actor: Principal | None) -> Product:
        """Create a product under a live product type.

        Holds the product type's lock until commit, as
        ``delete_product_type`` does, so a product cannot appear under a
        type that is being deleted.

        Raises:
            NotFoundError: If the product type is missing or deleted.
            DuplicateNameError: If the PLU is already used.
        """
        name = _required_text(data.name, "name")
        plu = _required_text(data.plu, "plu")
        price_per_kilo = (
            require_non_negative(data.price_per_kilo, "price_per_kilo")
            if data.price_per_kilo is not None
            else None
        )
        product_id = generate_uuid()

        def work() -> Product:
            _lock_live(
                db, ProductType, data.product_type_id, "ProductType", missing_if_deleted=True
            )
            _ensure_unique(db, Product.plu, plu, None, "PLU")
            product = Product(
                id=product_id,
                name=name,
                plu=plu,
                sold_by_unit=data.sold_by_unit,
                price_per_kilo=price_per_kilo,
                product_type_id=data.product_type_id,
            )
            AuditService.stamp_created(product, actor)
            db.add(product)
            db.flush()
            return product

        product = run_locked(
            db, PRODUCTS_TABLE, product_id, "create_product", work, actor,
            parent_keys=[(PRODUCT_TYPES_TABLE, data.product_type_id)],
        )
        logger.info("Created product: %s (PLU %s)", name, plu)
        return product

    @staticmethod
    def update_product(
        db: Session, product_id: str, data: ProductUpdate, actor: Principal | None
    ) -> Product:
        product = CatalogService.get_product(db, product_id)
        AuditService.ensure_live(product, "Product")

        if data.name is not None:
            product.name = _required_text(data.name, "name")
        if data.plu is not None:
            plu = _required_text(data.plu, "plu")
            _ensure_unique(db, Product.plu, plu, product_id, "PLU")
            product.plu = plu
        if data.sold_by_unit is not None:
            product.sold_by_unit = data.sold_by_unit
        if data.price_per_kilo is not None:
            product.price_per_kilo = require_non_negative(data.price_per_kilo, "price_per_kilo")

        AuditService.stamp_modified(product, actor)
        db.flush()
        logger.info("Updated product: %s", product_id)
        return product

    @staticmethod
    def count_active_units(db: Session, product_id: str) -> int:
        return (
            AuditService.query(db, Unit)
            .filter(Unit.product_id == product_id, Unit.is_active.is_(True))
            .count()
        )

    @staticmethod
    def delete_product(db: Session, product_id: str, actor: Principal | None) -> Product:
        """Soft-delete a product that has no active units.

        Depleted units do not block deletion; their history stays
        addressable through the unit ledger. Runs under the product's lock,
        which ``UnitLedgerService.create_unit`` also takes, so no unit can
        be registered between the dependency count and the delete.
        """

        def work() -> Product:
            product = _lock_live(db, Product, product_id, "Product")
            AuditService.ensure_no_dependents(
                CatalogService.count_active_units(db, product_id),
                "Product",
                product_id,
                "active unit(s)",
            )
            AuditService.soft_delete(product, actor, "Product")
            db.flush()
            return product

        return run_locked(db, PRODUCTS_TABLE, product_id, "delete_product", work, actor)

    # --- Element types ---

    @staticmethod
    def list_element_types(
        db: Session, include_inactive: bool = True, include_deleted: bool = False
    ) -> list[ElementType]:
        query = AuditService.query(db, ElementType, include_deleted)
        if not include_inactive:
            query = query.filter(ElementType.is_active.is_(True))
        return query.order_by(ElementType.name.asc()).all()

    @staticmethod
    def get_element_type(db: Session, element_type_id: str) -> ElementType:
        return AuditService.get(db, ElementType, element_type_id, "ElementType")

    @staticmethod
    def create_element_type(
        db: Session, data: ElementTypeCreate, actor: Principal | None
    ) -> ElementType:
        name = _required_text(data.name, "name")
        _ensure_unique(db, ElementType.name, name, None, "Element type")

        element_type = ElementType(
            name=name,
            unit_of_measure=data.unit_of_measure,
            category=data.category,
            description=data.description,
            is_active=True,
        )
        AuditService.stamp_created(element_type, actor)
        db.add(element_type)
        db.flush()
        logger.info("Created element type: %s", name)
        return element_type

    @staticmethod
    def update_element_type(
        db: Session, element_type_id: str, data: ElementTypeUpdate, actor: Principal | None
    ) -> ElementType:
        element_type = CatalogService.get_element_type(db, element_type_id)
        AuditService.ensure_live(element_type, "ElementType")

        if data.name is not None:
            name = _required_text(data.name, "name")
            _ensure_unique(db, ElementType.name, name, element_type_id, "Element type")
            element_type.name = name
        if data.unit_of_measure is not None:
            element_type.unit_of_measure = data.unit_of_measure
        if data.category is not None:
            element_type.category = data.category
        if data.description is not None:
            element_type.description = data.description
        if data.is_active is not None:
            element_type.is_active = data.is_active

        AuditService.stamp_modified(element_type, actor)
        db.flush()
        logger.info("Updated element type: %s", element_type_id)
        return element_type

    @staticmethod
    def count_live_elements(db: Session, element_type_id: str) -> int:
        return (
            AuditService.query(db, StockElement)
            .filter(StockElement.element_type_id == element_type_id)
            .count()
        )

    @staticmethod
    def delete_element_type(
        db: Session, element_type_id: str, actor: Principal | None
    ) -> ElementType:
        def work() -> ElementType:
            element_type = _lock_live(db, ElementType, element_type_id, "ElementType")
            AuditService.ensure_no_dependents(
                CatalogService.count_live_elements(db, element_type_id),
                "ElementType",
                element_type_id,
                "live stock element(s)",
            )
            AuditService.soft_delete(element_type, actor, "ElementType")
            db.flush()
            return element_type

        return run_locked(
            db, ELEMENT_TYPES_TABLE, element_type_id, "delete_element_type", work, actor
        )
