"""Pydantic schemas for the unit/partition (weight) ledger."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from schemas.common import AuditFields


class UnitCreate(BaseModel):
    """Schema for registering a new unit (intake).

    ``reason_id`` is optional here so a missing reason surfaces as a
    ledger validation error rather than a bare 422.
    """

    product_id: str
    initial_weight: Decimal
    reason_id: str | None = None
    intake_notes: str | None = None


class UnitNotesUpdate(BaseModel):
    """Schema for editing a unit's intake notes."""

    intake_notes: str | None = None


class PartitionCreate(BaseModel):
    """Schema for cutting a partition. A weight of 0 takes the remainder."""

    weight: Decimal
    reason_id: str | None = None
    cut_notes: str | None = None


class PartitionUpdate(BaseModel):
    """Schema for correcting partition metadata.

    Only fields present in the request are applied; an explicit null
    clears the field.
    """

    cut_notes: str | None = None
    reason_id: str | None = None


class PartitionResponse(BaseModel):
    """Schema for Partition API response."""

    id: str
    unit_id: str
    sequence: int
    kind: str = "egress"
    weight: Decimal
    balance_before: Decimal
    balance_after: Decimal
    cut_notes: str | None = None
    reason_id: str | None = None
    reason_name: str | None = None
    created_by_id: str | None = None
    modified_by_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UnitResponse(AuditFields):
    """Schema for Unit API response."""

    id: str
    product_id: str
    product_name: str | None = None
    initial_weight: Decimal
    current_weight: Decimal
    consumed_weight: Decimal
    is_active: bool
    intake_notes: str | None = None
    reason_id: str
    reason_name: str | None = None
    partition_count: int = 0


class PartitionCutResponse(BaseModel):
    """Result of a cut: the updated unit and the new partition."""

    unit: UnitResponse
    partition: PartitionResponse
