"""Unit model - a weight-based stock lot depleted by partitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import AuditMixin, generate_uuid


class Unit(AuditMixin, Base):
    """A physical lot of a product, tracked by weight in grams.

    The intake (initial weight, intake reason, creator) is the unit's
    genesis record. Afterwards ``current_weight`` only decreases, one
    Partition at a time, and ``is_active`` drops to False exactly when it
    reaches zero. Units never reactivate.
    """

    __tablename__ = "units"
    __table_args__ = (
        CheckConstraint("initial_weight > 0", name="ck_unit_initial_weight_positive"),
        CheckConstraint("current_weight >= 0", name="ck_unit_current_weight_non_negative"),
        CheckConstraint("current_weight <= initial_weight", name="ck_unit_current_weight_capped"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    initial_weight = Column(Numeric(10, 2), nullable=False)
    current_weight = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    intake_notes = Column(Text, nullable=True)
    reason_id = Column(String(36), ForeignKey("reasons.id"), nullable=False)

    # Relationships
    product = relationship("Product", back_populates="units")
    reason = relationship("Reason")
    partitions = relationship(
        "Partition", back_populates="unit", order_by="Partition.sequence"
    )
