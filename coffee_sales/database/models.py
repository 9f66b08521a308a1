"""
Database Models

Two tables back the analytical layer:

Fact Tables:
- FactCoffeeSale: denormalized order lines with customer and product attributes

Analytics Aggregates:
- AggProductSales: per (coffee type, order date) rollup, maintained incrementally
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# FACT TABLES
# =============================================================================

class FactCoffeeSale(Base):
    """
    Coffee Sales Fact Table

    Grain: one row per order line. Customer and product attributes are
    copied in at load time so reporting never joins.
    """
    __tablename__ = "fact_coffee_sales"

    order_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Customer attributes
    customer_id: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    postcode: Mapped[Optional[str]] = mapped_column(String(20))
    loyalty_card: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Product attributes
    product_id: Mapped[str] = mapped_column(String(50), nullable=False)
    coffee_type: Mapped[str] = mapped_column(String(50), nullable=False)
    roast_type: Mapped[Optional[str]] = mapped_column(String(10))
    size: Mapped[Optional[float]] = mapped_column(Float)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    price_per_100g: Mapped[Optional[float]] = mapped_column(Float)
    profit: Mapped[Optional[float]] = mapped_column(Float)

    # Audit
    loaded_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_fact_coffee_sales_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_fact_coffee_sales_unit_price"),
        Index("ix_fact_coffee_sales_date", "order_date"),
        Index("ix_fact_coffee_sales_country_date", "country", "order_date"),
        Index("ix_fact_coffee_sales_customer", "customer_id"),
        Index("ix_fact_coffee_sales_type_date", "coffee_type", "order_date"),
    )


# =============================================================================
# ANALYTICS AGGREGATES
# =============================================================================

class AggProductSales(Base):
    """
    Product Sales Mart

    One row per (coffee type, order date) with at least one live fact row.
    Kept consistent with the fact table by ProductSalesMart on every
    insert and delete.
    """
    __tablename__ = "agg_product_sales"

    coffee_type: Mapped[str] = mapped_column(String(50), primary_key=True)
    order_date: Mapped[date] = mapped_column(Date, primary_key=True)

    # Measures
    total_quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    total_sales_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    avg_order_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Audit
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_quantity_sold > 0", name="ck_agg_product_sales_quantity"),
        Index("ix_agg_product_sales_date", "order_date"),
    )
