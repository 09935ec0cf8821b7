"""Pydantic schemas for the stock element (quantity) ledger."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from models.stock_movement import MovementKind
from schemas.common import AuditFields


class StockElementCreate(BaseModel):
    """Schema for creating a stock element with its opening quantity."""

    name: str = Field(max_length=200)
    initial_quantity: Decimal = Decimal("0")
    element_type_id: str | None = None
    minimum_quantity: Decimal = Decimal("0")
    location: str | None = None
    description: str | None = None
    notes: str | None = None


class StockElementUpdate(BaseModel):
    """Schema for updating stock element metadata. Never the balance."""

    name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    minimum_quantity: Decimal | None = None
    location: str | None = None
    notes: str | None = None


class StockElementResponse(AuditFields):
    """Schema for StockElement API response."""

    id: str
    name: str
    description: str | None = None
    element_type_id: str | None = None
    element_type_name: str | None = None
    current_quantity: Decimal
    minimum_quantity: Decimal
    total_ingested: Decimal
    location: str | None = None
    notes: str | None = None
    is_active: bool
    is_below_threshold: bool = False


class IngressRequest(BaseModel):
    """Schema for registering incoming stock."""

    amount: Decimal
    notes: str | None = None
    reference_document: str | None = Field(default=None, max_length=200)
    movement_date: date | None = None


class EgressRequest(BaseModel):
    """Schema for registering outgoing stock. ``reason_id`` is required."""

    amount: Decimal
    reason_id: str | None = None
    notes: str | None = None
    reference_document: str | None = Field(default=None, max_length=200)
    movement_date: date | None = None


class AdjustmentRequest(BaseModel):
    """Schema for a signed inventory correction."""

    delta: Decimal
    reason_text: str = ""
    notes: str | None = None
    movement_date: date | None = None


class StockMovementResponse(BaseModel):
    """Schema for StockMovement API response."""

    id: str
    stock_element_id: str
    sequence: int
    kind: MovementKind
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    reason_id: str | None = None
    reason_name: str | None = None
    adjustment_reason: str | None = None
    reference_document: str | None = None
    notes: str | None = None
    movement_date: date
    actor_id: str | None = None
    recorded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MovementResultResponse(BaseModel):
    """Result of a movement: the updated element and the appended record."""

    element: StockElementResponse
    movement: StockMovementResponse
