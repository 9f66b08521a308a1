"""
Reporting Module
"""
from .metrics import (
    CLVSummary,
    SalesMetrics,
    category_sales,
    customer_lifetime_value,
    customers_by_country,
    loyalty_impact,
    monthly_sales,
)
from .report import ReportRow, SalesReporter
from .schedule import month_window, previous_month_window, report_window

__all__ = [
    "CLVSummary",
    "SalesMetrics",
    "category_sales",
    "customer_lifetime_value",
    "customers_by_country",
    "loyalty_impact",
    "monthly_sales",
    "ReportRow",
    "SalesReporter",
    "month_window",
    "previous_month_window",
    "report_window",
]
