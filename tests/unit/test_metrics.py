"""
Unit Tests - Business Metrics
"""
from datetime import date
from decimal import Decimal

import polars as pl
import pytest

from coffee_sales.config.settings import ReportingSettings
from coffee_sales.exceptions import ConfigError
from coffee_sales.reporting.metrics import (
    SalesMetrics,
    category_sales,
    customer_lifetime_value,
    customers_by_country,
    loyalty_impact,
    monthly_sales,
)


def _facts(rows: list) -> pl.DataFrame:
    return pl.DataFrame(
        rows,
        schema={
            "order_id": pl.Utf8,
            "order_date": pl.Date,
            "customer_id": pl.Utf8,
            "country": pl.Utf8,
            "loyalty_card": pl.Boolean,
            "coffee_type": pl.Utf8,
            "quantity": pl.Int64,
            "unit_price": pl.Float64,
        },
        orient="row",
    )


@pytest.fixture
def facts_df() -> pl.DataFrame:
    return _facts([
        ("O1", date(2024, 1, 5), "C1", "United States", True, "Exc", 10, 100.0),
        ("O2", date(2024, 1, 20), "C2", "United States", False, "Ara", 3, 100.0),
        ("O3", date(2024, 2, 10), "C1", "United States", True, "Exc", 8, 100.0),
        ("O4", date(2024, 3, 1), "C3", "Ireland", True, "Rob", 1, 50.0),
        ("O5", date(2024, 3, 31), "C3", "Ireland", True, "Rob", 2, 50.0),
    ])


class TestMonthlySales:
    """Tests for monthly_sales"""

    def test_totals_and_categories(self, facts_df):
        result = monthly_sales(facts_df)

        assert result["month"].to_list() == ["2024-01", "2024-02", "2024-03"]
        assert result["total_sales"].to_list() == [1300.0, 800.0, 150.0]
        assert result["avg_order_value"].to_list() == [650.0, 800.0, 75.0]
        assert result["sales_category"].to_list() == ["High", "Moderate", "Low"]

    def test_threshold_boundaries(self):
        df = _facts([
            ("O1", date(2024, 1, 1), "C1", "United States", True, "Exc", 1, 1260.0),
            ("O2", date(2024, 2, 1), "C1", "United States", True, "Exc", 1, 720.0),
            ("O3", date(2024, 3, 1), "C1", "United States", True, "Exc", 1, 719.99),
        ])

        result = monthly_sales(df)

        assert result["sales_category"].to_list() == ["High", "Moderate", "Low"]

    def test_custom_thresholds(self, facts_df):
        result = monthly_sales(facts_df, high_threshold=100.0, moderate_threshold=50.0)

        assert set(result["sales_category"].to_list()) == {"High"}

    def test_inverted_thresholds_rejected(self, facts_df):
        with pytest.raises(ConfigError):
            monthly_sales(facts_df, high_threshold=100.0, moderate_threshold=200.0)

    def test_settings_reject_inverted_thresholds(self):
        with pytest.raises(ValueError):
            ReportingSettings(high_sales_threshold=100.0, moderate_sales_threshold=200.0)


def test_customers_by_country(facts_df):
    result = customers_by_country(facts_df)

    assert result.to_dicts() == [
        {"country": "United States", "distinct_customer_count": 2},
        {"country": "Ireland", "distinct_customer_count": 1},
    ]


def test_category_sales(facts_df):
    result = category_sales(facts_df)

    assert result["coffee_type"].to_list() == ["Exc", "Ara", "Rob"]
    assert result["total_sales"].to_list() == [1800.0, 300.0, 150.0]
    assert result["avg_order_value"].to_list() == [900.0, 300.0, 75.0]


class TestCustomerLifetimeValue:
    """Tests for customer_lifetime_value"""

    def test_clv(self, facts_df):
        summary = customer_lifetime_value(facts_df)

        assert summary.avg_value_of_sale == 425.0
        assert summary.avg_number_of_transactions == 1.67
        assert summary.avg_customer_lifespan_months == 1.33
        assert summary.customer_lifetime_value == 944.44

    def test_lifespan_counts_whole_months(self):
        df = _facts([
            ("O1", date(2024, 1, 31), "C1", "United States", True, "Exc", 1, 10.0),
            ("O2", date(2024, 2, 1), "C1", "United States", True, "Exc", 1, 10.0),
        ])

        assert customer_lifetime_value(df).avg_customer_lifespan_months == 1.0

    def test_lifespan_across_years(self):
        df = _facts([
            ("O1", date(2019, 11, 15), "C1", "United States", True, "Exc", 1, 10.0),
            ("O2", date(2021, 2, 15), "C1", "United States", True, "Exc", 1, 10.0),
        ])

        assert customer_lifetime_value(df).avg_customer_lifespan_months == 16.0

    def test_empty(self):
        summary = customer_lifetime_value(_facts([]))

        assert summary.to_dict() == {
            "avg_value_of_sale": 0.0,
            "avg_number_of_transactions": 0.0,
            "avg_customer_lifespan_months": 0.0,
            "customer_lifetime_value": 0.0,
        }


def test_loyalty_impact(facts_df):
    result = loyalty_impact(facts_df)

    assert result.to_dicts() == [
        {"loyalty_status": "No", "customer_count": 1, "total_sales": 300.0, "avg_revenue_per_customer": 300.0},
        {"loyalty_status": "Yes", "customer_count": 2, "total_sales": 1950.0, "avg_revenue_per_customer": 975.0},
    ]


class TestSalesMetrics:
    """Metrics bound to a fact store"""

    def test_metrics_over_store(self, store, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="B-1", quantity=2, order_date=date(2024, 12, 3)))
        store.insert(make_fact(
            order_id="C-1", customer_id="C-2", country="Ireland", loyalty_card=False,
            coffee_type="Rob", unit_price=Decimal("2.985"), quantity=1,
        ))

        metrics = SalesMetrics(store, ReportingSettings())

        monthly = metrics.monthly_sales()
        assert monthly["month"].to_list() == ["2024-11", "2024-12"]
        assert monthly["sales_category"].to_list() == ["Low", "Low"]

        countries = metrics.customers_by_country()
        assert countries["country"].to_list() == ["Ireland", "United States"]

        assert metrics.category_sales()["coffee_type"].to_list() == ["Exc", "Rob"]
        assert metrics.loyalty_impact()["loyalty_status"].to_list() == ["No", "Yes"]
        assert metrics.customer_lifetime_value().avg_number_of_transactions == 1.5

    def test_metrics_over_empty_store(self, store):
        metrics = SalesMetrics(store)

        assert metrics.monthly_sales().is_empty()
        assert metrics.customer_lifetime_value().customer_lifetime_value == 0.0
