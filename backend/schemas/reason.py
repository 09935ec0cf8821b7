"""Pydantic schemas for the reason catalog."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ReasonCreate(BaseModel):
    """Schema for creating a reason."""

    name: str
    description: str | None = None


class ReasonUpdate(BaseModel):
    """Schema for updating a reason."""

    name: str | None = None
    description: str | None = None
    is_active: bool | None = None


class ReasonResponse(BaseModel):
    """Schema for Reason API response."""

    id: str
    name: str
    description: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
