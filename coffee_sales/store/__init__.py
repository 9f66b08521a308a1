"""
Fact Store and Product Sales Mart
"""
from .fact_store import FactStore
from .identifiers import CustomerIdGenerator
from .mart import MartDiscrepancy, ProductSalesMart, line_revenue
from .schemas import FactRow, MartRow

__all__ = [
    "FactStore",
    "CustomerIdGenerator",
    "MartDiscrepancy",
    "ProductSalesMart",
    "line_revenue",
    "FactRow",
    "MartRow",
]
