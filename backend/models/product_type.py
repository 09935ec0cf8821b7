"""ProductType model - top-level classification of weighed products."""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import AuditMixin, generate_uuid


class ProductType(AuditMixin, Base):
    """A family of products (e.g. a cheese variety)."""

    __tablename__ = "product_types"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False, unique=True)

    # Relationships
    products = relationship("Product", back_populates="product_type")
