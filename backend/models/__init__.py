"""SQLAlchemy ORM models."""

from .user import User
from .reason import Reason
from .product_type import ProductType
from .product import Product
from .unit import Unit
from .stock_movement import MovementKind, StockMovement
from .partition import Partition
from .element_type import ElementType
from .stock_element import StockElement
from .utils import Deleted, Live, generate_uuid

__all__ = ["Deleted", "ElementType", "Live", "MovementKind", "Partition", "Product", "ProductType", "Reason", "StockElement", "StockMovement", "Unit", "User", "generate_uuid"]
