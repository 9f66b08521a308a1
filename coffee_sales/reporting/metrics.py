"""
Business Metrics

One-shot aggregations over a snapshot of the fact table:
- Monthly sales with High / Moderate / Low categorization
- Distinct customer count by country
- Sales by coffee type
- Customer lifetime value (CLV)
- Loyalty card revenue impact

Average order value here is the mean of per-line revenue. It is a different
metric from the product sales mart's avg_order_value (revenue / quantity).
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional

import polars as pl
import structlog

from coffee_sales.config.settings import ReportingSettings
from coffee_sales.exceptions import ConfigError
from coffee_sales.store.fact_store import FactStore

logger = structlog.get_logger(__name__)


@dataclass
class CLVSummary:
    """Customer lifetime value and its three factors"""
    avg_value_of_sale: float
    avg_number_of_transactions: float
    avg_customer_lifespan_months: float
    customer_lifetime_value: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _with_revenue(df: pl.DataFrame) -> pl.DataFrame:
    return df.with_columns(
        (pl.col("quantity") * pl.col("unit_price")).alias("revenue")
    )


def monthly_sales(
    df: pl.DataFrame,
    high_threshold: float = 1260.0,
    moderate_threshold: float = 720.0,
) -> pl.DataFrame:
    """
    Total sales and average order value per month.

    Args:
        df: Fact table snapshot
        high_threshold: Totals at or above this are 'High'
        moderate_threshold: Totals at or above this (and below high) are 'Moderate'

    Returns:
        DataFrame [month, total_sales, avg_order_value, sales_category]
        sorted by total_sales descending
    """
    if moderate_threshold > high_threshold:
        raise ConfigError(
            f"Moderate threshold {moderate_threshold} exceeds high threshold {high_threshold}"
        )

    result = (
        _with_revenue(df)
        .with_columns(pl.col("order_date").dt.strftime("%Y-%m").alias("month"))
        .group_by("month")
        .agg([
            pl.col("revenue").sum().alias("total_sales"),
            pl.col("revenue").mean().alias("avg_order_value"),
        ])
        # Categorize on the unrounded total
        .with_columns(
            pl.when(pl.col("total_sales") >= high_threshold)
            .then(pl.lit("High"))
            .when(pl.col("total_sales") >= moderate_threshold)
            .then(pl.lit("Moderate"))
            .otherwise(pl.lit("Low"))
            .alias("sales_category")
        )
        .with_columns([
            pl.col("total_sales").round(2),
            pl.col("avg_order_value").round(2),
        ])
        .sort(["total_sales", "month"], descending=[True, False])
    )

    logger.debug("Computed monthly sales", months=len(result))
    return result


def customers_by_country(df: pl.DataFrame) -> pl.DataFrame:
    """Distinct customers per country, most customers first"""
    return (
        df.group_by("country")
        .agg(pl.col("customer_id").n_unique().alias("distinct_customer_count"))
        .sort(["distinct_customer_count", "country"], descending=[True, False])
    )


def category_sales(df: pl.DataFrame) -> pl.DataFrame:
    """Total sales and average order value per coffee type"""
    return (
        _with_revenue(df)
        .group_by("coffee_type")
        .agg([
            pl.col("revenue").sum().round(2).alias("total_sales"),
            pl.col("revenue").mean().round(2).alias("avg_order_value"),
        ])
        .sort(["total_sales", "coffee_type"], descending=[True, False])
    )


def customer_lifetime_value(df: pl.DataFrame) -> CLVSummary:
    """
    CLV = avg value of sale x avg number of transactions x avg lifespan.

    Value of sale is each customer's total sales over their purchase count.
    Lifespan counts whole months between a customer's first and last
    order, plus one.
    """
    if df.is_empty():
        return CLVSummary(0.0, 0.0, 0.0, 0.0)

    first = pl.col("first_order")
    last = pl.col("last_order")

    per_customer = (
        _with_revenue(df)
        .group_by("customer_id")
        .agg([
            pl.col("revenue").sum().alias("total_sales"),
            pl.col("order_id").count().alias("purchase_count"),
            pl.col("order_date").min().alias("first_order"),
            pl.col("order_date").max().alias("last_order"),
        ])
        .with_columns(
            (
                (last.dt.year().cast(pl.Int64) - first.dt.year().cast(pl.Int64)) * 12
                + (last.dt.month().cast(pl.Int64) - first.dt.month().cast(pl.Int64))
                - (last.dt.day() < first.dt.day()).cast(pl.Int64)
                + 1
            ).alias("lifetime_months"),
            (pl.col("total_sales") / pl.col("purchase_count")).alias("value_of_sale"),
        )
    )

    avg_value = per_customer["value_of_sale"].mean()
    avg_transactions = per_customer["purchase_count"].mean()
    avg_lifespan = per_customer["lifetime_months"].mean()

    summary = CLVSummary(
        avg_value_of_sale=round(avg_value, 2),
        avg_number_of_transactions=round(avg_transactions, 2),
        avg_customer_lifespan_months=round(avg_lifespan, 2),
        customer_lifetime_value=round(avg_value * avg_transactions * avg_lifespan, 2),
    )
    logger.debug("Computed customer lifetime value", customers=len(per_customer), clv=summary.customer_lifetime_value)
    return summary


def loyalty_impact(df: pl.DataFrame) -> pl.DataFrame:
    """Customer count, total sales and revenue per customer by loyalty status"""
    return (
        _with_revenue(df)
        .group_by("loyalty_card")
        .agg([
            pl.col("customer_id").n_unique().alias("customer_count"),
            pl.col("revenue").sum().alias("total_sales"),
        ])
        .with_columns([
            pl.when(pl.col("loyalty_card")).then(pl.lit("Yes")).otherwise(pl.lit("No")).alias("loyalty_status"),
            pl.col("total_sales").round(2),
            (pl.col("total_sales") / pl.col("customer_count")).round(2).alias("avg_revenue_per_customer"),
        ])
        .select(["loyalty_status", "customer_count", "total_sales", "avg_revenue_per_customer"])
        .sort("loyalty_status")
    )


class SalesMetrics:
    """
    Metrics bound to a fact store and reporting configuration.

    Each call takes a fresh snapshot of the fact table.
    """

    def __init__(self, store: FactStore, settings: Optional[ReportingSettings] = None):
        self.store = store
        self.settings = settings or ReportingSettings()

    def monthly_sales(self) -> pl.DataFrame:
        return monthly_sales(
            self.store.to_frame(),
            high_threshold=self.settings.high_sales_threshold,
            moderate_threshold=self.settings.moderate_sales_threshold,
        )

    def customers_by_country(self) -> pl.DataFrame:
        return customers_by_country(self.store.to_frame())

    def category_sales(self) -> pl.DataFrame:
        return category_sales(self.store.to_frame())

    def customer_lifetime_value(self) -> CLVSummary:
        return customer_lifetime_value(self.store.to_frame())

    def loyalty_impact(self) -> pl.DataFrame:
        return loyalty_impact(self.store.to_frame())
