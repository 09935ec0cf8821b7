"""Reason model - categorical justification for stock movements."""

from sqlalchemy import Boolean, Column, DateTime, String, Text

from database import Base
from models.utils import generate_uuid, utc_now


class Reason(Base):
    """A reason such as "Sale", "Waste" or "Tasting".

    Reasons are never deleted; they are deactivated so historical
    movements keep a valid reference.
    """

    __tablename__ = "reasons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
