"""ElementType model - classification of count-based stock elements."""

from sqlalchemy import Boolean, Column, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import AuditMixin, generate_uuid


class ElementType(AuditMixin, Base):
    """A kind of consumable item, e.g. "Wooden pallet" or "Cardboard box"."""

    __tablename__ = "element_types"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False, unique=True)
    unit_of_measure = Column(String(50), nullable=True)  # e.g. "units", "meters", "kg"
    category = Column(String(50), nullable=True)  # e.g. "Packaging", "Tool"
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    stock_elements = relationship("StockElement", back_populates="element_type")
