"""Shared API helpers for route handlers.

Principal dependencies and the response builders used across multiple
route files.
"""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database import get_db
from models import ElementType, Partition, Product, ProductType, StockElement, StockMovement, Unit
from models.utils import AuditMixin, Deleted
from services.balance import ReplayResult
from services.principal_service import Principal, PrincipalService
from services.stock_ledger_service import StockLedgerService


def get_current_principal(
    x_user_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the ``X-User-Id`` header to the acting principal.

    Raises:
        AuthenticationError: Missing header, unknown or inactive user.
    """
    return PrincipalService.resolve_principal(db, x_user_id)


def get_admin_principal(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Like ``get_current_principal`` but requires the admin role."""
    return PrincipalService.require_admin(principal)


def audit_fields(entity: AuditMixin) -> dict:
    """Build the AuditFields part of a response dict."""
    return {
        "created_at": entity.created_at,
        "updated_at": entity.updated_at,
        "created_by_id": entity.created_by_id,
        "modified_by_id": entity.modified_by_id,
        "deleted_at": entity.deleted_at,
        "deleted_by_id": entity.deleted_by_id,
        "lifecycle": "deleted" if isinstance(entity.lifecycle, Deleted) else "live",
    }


def product_type_response_dict(product_type: ProductType) -> dict:
    return {
        **audit_fields(product_type),
        "id": product_type.id,
        "name": product_type.name,
        "product_count": sum(1 for p in product_type.products if not p.is_deleted),
    }


def product_response_dict(product: Product) -> dict:
    return {
        **audit_fields(product),
        "id": product.id,
        "name": product.name,
        "plu": product.plu,
        "sold_by_unit": product.sold_by_unit,
        "price_per_kilo": product.price_per_kilo,
        "product_type_id": product.product_type_id,
        "product_type_name": product.product_type.name if product.product_type else None,
    }


def element_type_response_dict(element_type: ElementType) -> dict:
    return {
        **audit_fields(element_type),
        "id": element_type.id,
        "name": element_type.name,
        "unit_of_measure": element_type.unit_of_measure,
        "category": element_type.category,
        "description": element_type.description,
        "is_active": element_type.is_active,
    }


def unit_response_dict(unit: Unit) -> dict:
    """Build a UnitResponse-compatible dict from a Unit.

    Args:
        unit: A Unit with its product, reason and partitions reachable.

    Returns:
        Dict matching the UnitResponse schema.
    """
    return {
        **audit_fields(unit),
        "id": unit.id,
        "product_id": unit.product_id,
        "product_name": unit.product.name if unit.product else None,
        "initial_weight": unit.initial_weight,
        "current_weight": unit.current_weight,
        "consumed_weight": unit.initial_weight - unit.current_weight,
        "is_active": unit.is_active,
        "intake_notes": unit.intake_notes,
        "reason_id": unit.reason_id,
        "reason_name": unit.reason.name if unit.reason else None,
        "partition_count": len(unit.partitions),
    }


def partition_response_dict(partition: Partition) -> dict:
    return {
        "id": partition.id,
        "unit_id": partition.unit_id,
        "sequence": partition.sequence,
        "kind": partition.kind.value,
        "weight": partition.weight,
        "balance_before": partition.balance_before,
        "balance_after": partition.balance_after,
        "cut_notes": partition.cut_notes,
        "reason_id": partition.reason_id,
        "reason_name": partition.reason.name if partition.reason else None,
        "created_by_id": partition.created_by_id,
        "modified_by_id": partition.modified_by_id,
        "created_at": partition.created_at,
        "updated_at": partition.updated_at,
    }


def stock_element_response_dict(element: StockElement) -> dict:
    """Build a StockElementResponse-compatible dict, including the
    low-stock flag."""
    return {
        **audit_fields(element),
        "id": element.id,
        "name": element.name,
        "description": element.description,
        "element_type_id": element.element_type_id,
        "element_type_name": element.element_type.name if element.element_type else None,
        "current_quantity": element.current_quantity,
        "minimum_quantity": element.minimum_quantity,
        "total_ingested": element.total_ingested,
        "location": element.location,
        "notes": element.notes,
        "is_active": element.is_active,
        "is_below_threshold": StockLedgerService.is_below_threshold(element),
    }


def movement_response_dict(movement: StockMovement) -> dict:
    return {
        "id": movement.id,
        "stock_element_id": movement.stock_element_id,
        "sequence": movement.sequence,
        "kind": movement.kind,
        "amount": movement.amount,
        "balance_before": movement.balance_before,
        "balance_after": movement.balance_after,
        "reason_id": movement.reason_id,
        "reason_name": movement.reason.name if movement.reason else None,
        "adjustment_reason": movement.adjustment_reason,
        "reference_document": movement.reference_document,
        "notes": movement.notes,
        "movement_date": movement.movement_date,
        "actor_id": movement.actor_id,
        "recorded_at": movement.recorded_at,
    }


def verification_response_dict(entity_id: str, result: ReplayResult) -> dict:
    return {
        "entity_id": entity_id,
        "opening_balance": result.opening_balance,
        "replayed_balance": result.replayed_balance,
        "stored_balance": result.stored_balance,
        "movement_count": result.movement_count,
        "broken_links": result.broken_links,
        "is_consistent": result.is_consistent,
    }
