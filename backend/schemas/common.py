"""Shared pieces of the ledger API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict


class AuditFields(BaseModel):
    """Attribution and lifecycle columns carried by every audited entity."""

    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by_id: str | None = None
    modified_by_id: str | None = None
    deleted_at: datetime | None = None
    deleted_by_id: str | None = None
    lifecycle: Literal["live", "deleted"] = "live"

    model_config = ConfigDict(from_attributes=True)


class BalanceVerificationResponse(BaseModel):
    """Result of replaying an entity's movement log against its balance."""

    entity_id: str
    opening_balance: Decimal
    replayed_balance: Decimal
    stored_balance: Decimal
    movement_count: int
    broken_links: list[int] = []
    is_consistent: bool
