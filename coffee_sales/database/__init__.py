"""
Database Module
"""
from .connection import Database, create_database
from .models import Base, FactCoffeeSale, AggProductSales

__all__ = [
    "Database",
    "create_database",
    "Base",
    "FactCoffeeSale",
    "AggProductSales",
]
