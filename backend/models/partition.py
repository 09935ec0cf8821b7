"""Partition model - one cut taken from a unit."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.stock_movement import MovementKind
from models.utils import TrackedMixin, generate_uuid


class Partition(TrackedMixin, Base):
    """Records a weight reduction of a unit (sale, waste, tasting...).

    Balance fields are written once. Only ``cut_notes`` and ``reason_id``
    may be corrected afterwards; partitions are never deleted.
    """

    __tablename__ = "partitions"
    __table_args__ = (
        UniqueConstraint("unit_id", "sequence", name="uix_partition_unit_sequence"),
        CheckConstraint("weight > 0", name="ck_partition_weight_positive"),
        CheckConstraint("balance_after >= 0", name="ck_partition_balance_after_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    unit_id = Column(String(36), ForeignKey("units.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    weight = Column(Numeric(10, 2), nullable=False)
    balance_before = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    cut_notes = Column(Text, nullable=True)
    reason_id = Column(String(36), ForeignKey("reasons.id"), nullable=True)

    # Relationships
    unit = relationship("Unit", back_populates="partitions")
    reason = relationship("Reason")

    @property
    def kind(self) -> MovementKind:
        return MovementKind.EGRESS

    @property
    def amount(self):
        return self.weight
