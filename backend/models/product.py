"""Product model - the owner classification of weight-based units."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import AuditMixin, generate_uuid


class Product(AuditMixin, Base):
    """A sellable product identified by its PLU code.

    Physical stock of a product is held in Units; the product itself
    carries no balance.
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint(
            "price_per_kilo IS NULL OR price_per_kilo >= 0",
            name="ck_product_price_non_negative",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    plu = Column(String(20), nullable=False, unique=True)
    sold_by_unit = Column(Boolean, default=False, nullable=False)
    price_per_kilo = Column(Numeric(10, 2), nullable=True)
    product_type_id = Column(String(36), ForeignKey("product_types.id"), nullable=False, index=True)

    # Relationships
    product_type = relationship("ProductType", back_populates="products")
    units = relationship("Unit", back_populates="product")
