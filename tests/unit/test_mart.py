"""
Unit Tests - Product Sales Mart
"""
from datetime import date
from decimal import Decimal

import pytest

from coffee_sales.database.models import AggProductSales
from coffee_sales.exceptions import InvariantViolation
from coffee_sales.store.mart import average_order_value, line_revenue, to_cents

NOV_1 = date(2024, 11, 1)


class TestRounding:
    """Tests for cent rounding helpers"""

    def test_to_cents_rounds_half_up(self):
        assert to_cents(Decimal("25.875")) == Decimal("25.88")
        assert to_cents(Decimal("25.865")) == Decimal("25.87")
        assert to_cents(Decimal("-0.005")) == Decimal("-0.01")

    def test_line_revenue(self):
        assert line_revenue(4, Decimal("25.875")) == Decimal("103.50")
        assert line_revenue(3, Decimal("9.995")) == Decimal("29.99")

    def test_line_revenue_accepts_float_price(self):
        assert line_revenue(2, 25.875) == Decimal("51.75")

    def test_average_order_value(self):
        assert average_order_value(Decimal("155.25"), 6) == Decimal("25.88")


class TestIncrementalMaintenance:
    """Insert / delete sequences on a single mart key"""

    def test_first_insert_creates_row(self, store, mart, make_fact):
        """Scenario A"""
        store.insert(make_fact(order_id="A-1", quantity=4))

        row = mart.get("Exc", NOV_1)

        assert row is not None
        assert row.total_quantity_sold == 4
        assert row.total_sales_amount == Decimal("103.50")
        assert row.avg_order_value == Decimal("25.88")

    def test_second_insert_accumulates(self, store, mart, make_fact):
        """Scenario B"""
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="B-1", quantity=2))

        row = mart.get("Exc", NOV_1)

        assert row.total_quantity_sold == 6
        assert row.total_sales_amount == Decimal("155.25")
        assert row.avg_order_value == Decimal("25.88")

    def test_delete_reverses_insert(self, store, mart, make_fact):
        """Scenario C"""
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="B-1", quantity=2))

        store.delete("B-1")
        row = mart.get("Exc", NOV_1)

        assert row.total_quantity_sold == 4
        assert row.total_sales_amount == Decimal("103.50")
        assert row.avg_order_value == Decimal("25.88")

    def test_delete_of_last_fact_removes_row(self, store, mart, make_fact):
        """Scenario D"""
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="B-1", quantity=2))
        store.delete("B-1")

        store.delete("A-1")

        assert mart.get("Exc", NOV_1) is None
        assert mart.rows() == []

    def test_keys_are_independent(self, store, mart, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="R-1", coffee_type="Rob", unit_price=Decimal("2.985"), quantity=1))
        store.insert(make_fact(order_id="A-2", order_date=date(2024, 11, 2), quantity=1))

        rows = mart.rows()

        assert [(r.coffee_type, r.order_date) for r in rows] == [
            ("Exc", date(2024, 11, 2)),
            ("Exc", NOV_1),
            ("Rob", NOV_1),
        ]
        assert mart.get("Rob", NOV_1).total_sales_amount == Decimal("2.99")

    def test_insert_then_delete_leaves_mart_unchanged(self, store, mart, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=3, unit_price=Decimal("12.95")))
        before = mart.rows()

        store.insert(make_fact(order_id="X-1", quantity=5, unit_price=Decimal("7.777")))
        store.delete("X-1")

        assert mart.rows() == before

    def test_sum_consistency_after_mixed_mutations(self, store, mart, make_fact):
        prices = [Decimal("25.875"), Decimal("9.95"), Decimal("3.885"), Decimal("14.85")]
        for i, price in enumerate(prices * 3):
            store.insert(make_fact(
                order_id=f"O-{i}",
                quantity=(i % 5) + 1,
                unit_price=price,
                coffee_type=["Exc", "Ara"][i % 2],
                order_date=date(2024, 11, 1 + (i % 3)),
            ))
        for i in (0, 3, 7, 8):
            store.delete(f"O-{i}")

        assert mart.reconcile() == []

        facts = store.rows()
        for row in mart.rows():
            matching = [f for f in facts if f.mart_key == (row.coffee_type, row.order_date)]
            assert row.total_quantity_sold == sum(f.quantity for f in matching)
            assert row.total_sales_amount == sum(line_revenue(f.quantity, f.unit_price) for f in matching)
            assert row.total_quantity_sold > 0

    def test_reads_are_idempotent(self, store, mart, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))

        assert mart.rows() == mart.rows()
        assert mart.get("Exc", NOV_1) == mart.get("Exc", NOV_1)

    def test_rows_filters(self, store, mart, make_fact):
        store.insert(make_fact(order_id="A-1"))
        store.insert(make_fact(order_id="A-2", order_date=date(2024, 12, 5)))
        store.insert(make_fact(order_id="R-1", coffee_type="Rob"))

        assert len(mart.rows(coffee_type="Exc")) == 2
        assert len(mart.rows(start_date=date(2024, 12, 1))) == 1
        assert len(mart.rows(end_date=NOV_1)) == 2


class TestInvariantRepair:
    """The maintainer repairs inconsistent mart rows instead of raising"""

    def test_delete_with_missing_mart_row_is_repaired(self, store, mart, database, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        with database.session() as session:
            session.delete(session.get(AggProductSales, ("Exc", NOV_1)))

        deleted = store.delete("A-1")

        assert deleted.order_id == "A-1"
        assert mart.get("Exc", NOV_1) is None
        assert mart.reconcile() == []

    def test_negative_quantity_removes_row(self, store, mart, database, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="B-1", quantity=2))
        with database.session() as session:
            agg = session.get(AggProductSales, ("Exc", NOV_1))
            agg.total_quantity_sold = 3

        store.delete("A-1")

        assert mart.get("Exc", NOV_1) is None

    def test_residual_sales_on_drained_row_removes_row(self, store, mart, database, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        with database.session() as session:
            agg = session.get(AggProductSales, ("Exc", NOV_1))
            agg.total_sales_amount = Decimal("110.00")

        store.delete("A-1")

        assert mart.get("Exc", NOV_1) is None


class TestRebuildAndReconcile:
    """Full recomputation from facts"""

    def test_reconcile_reports_discrepancies(self, store, mart, database, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="R-1", coffee_type="Rob", quantity=1))
        with database.session() as session:
            session.get(AggProductSales, ("Exc", NOV_1)).total_quantity_sold = 9
            session.delete(session.get(AggProductSales, ("Rob", NOV_1)))
            session.add(AggProductSales(
                coffee_type="Lib",
                order_date=NOV_1,
                total_quantity_sold=1,
                total_sales_amount=Decimal("4.00"),
                avg_order_value=Decimal("4.00"),
            ))

        discrepancies = mart.reconcile()

        issues = {(d.coffee_type, d.issue) for d in discrepancies}
        assert issues == {("Exc", "mismatch"), ("Lib", "unexpected"), ("Rob", "missing")}

    def test_reconcile_strict_raises(self, store, mart, database, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        with database.session() as session:
            session.get(AggProductSales, ("Exc", NOV_1)).total_quantity_sold = 9

        with pytest.raises(InvariantViolation) as exc_info:
            mart.reconcile(strict=True)

        assert len(exc_info.value.details) == 1

    def test_rebuild_restores_consistency(self, store, mart, database, make_fact):
        store.insert(make_fact(order_id="A-1", quantity=4))
        store.insert(make_fact(order_id="B-1", quantity=2))
        expected = mart.rows()
        with database.session() as session:
            session.get(AggProductSales, ("Exc", NOV_1)).total_quantity_sold = 1

        with database.session() as session:
            written = mart.rebuild(session)

        assert written == 1
        assert mart.rows() == expected
        assert mart.reconcile(strict=True) == []

    def test_reconcile_empty_store(self, mart):
        assert mart.reconcile(strict=True) == []
