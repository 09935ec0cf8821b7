"""API route handlers."""
from . import element_types, partitions, product_types, products, reasons, stock_elements, units

__all__ = [
    "element_types",
    "partitions",
    "product_types",
    "products",
    "reasons",
    "stock_elements",
    "units",
]
