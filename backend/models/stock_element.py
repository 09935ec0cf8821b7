"""StockElement model - a count-based stock record."""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import AuditMixin, generate_uuid


class StockElement(AuditMixin, Base):
    """A consumable item whose on-hand quantity moves up and down.

    ``current_quantity`` is only written by the stock ledger together with
    a StockMovement. ``total_ingested`` is a reporting high-water mark.
    The name is unique across live and soft-deleted rows.
    """

    __tablename__ = "stock_elements"
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_stock_element_quantity_non_negative"),
        CheckConstraint("minimum_quantity >= 0", name="ck_stock_element_minimum_non_negative"),
        CheckConstraint("total_ingested >= 0", name="ck_stock_element_total_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    element_type_id = Column(String(36), ForeignKey("element_types.id"), nullable=True, index=True)
    current_quantity = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    minimum_quantity = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_ingested = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    location = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    element_type = relationship("ElementType", back_populates="stock_elements")
    movements = relationship(
        "StockMovement", back_populates="stock_element", order_by="StockMovement.sequence"
    )
