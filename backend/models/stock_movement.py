"""StockMovement model - append-only log entry for a stock element."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class MovementKind(str, Enum):
    """Direction of a movement. Amounts are always positive."""

    INGRESS = "ingress"
    EGRESS = "egress"
    ADJUSTMENT = "adjustment"


class StockMovement(Base):
    """One recorded change to a StockElement's quantity.

    Rows are immutable once written. ``sequence`` is the 1-based position
    in the element's log; replaying the log in sequence order from zero
    reproduces ``StockElement.current_quantity``.
    """

    __tablename__ = "stock_movements"
    __table_args__ = (
        UniqueConstraint("stock_element_id", "sequence", name="uix_stock_movement_element_sequence"),
        CheckConstraint("amount > 0", name="ck_stock_movement_amount_positive"),
        CheckConstraint("balance_before >= 0", name="ck_stock_movement_before_non_negative"),
        CheckConstraint("balance_after >= 0", name="ck_stock_movement_after_non_negative"),
        CheckConstraint(
            "kind IN ('ingress', 'egress', 'adjustment')", name="ck_stock_movement_kind_valid"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    stock_element_id = Column(String(36), ForeignKey("stock_elements.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    kind = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    balance_before = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    reason_id = Column(String(36), ForeignKey("reasons.id"), nullable=True)
    adjustment_reason = Column(String(200), nullable=True)  # free text, adjustments only
    reference_document = Column(String(200), nullable=True)  # invoice / delivery note number
    notes = Column(Text, nullable=True)
    movement_date = Column(Date, nullable=False)
    actor_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    recorded_at = Column(DateTime, default=utc_now, nullable=False, index=True)

    # Relationships
    stock_element = relationship("StockElement", back_populates="movements")
    reason = relationship("Reason")
    actor = relationship("User")
