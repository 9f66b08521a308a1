"""
Product Sales Mart

Incremental maintenance of the per (coffee type, order date) rollup.

The fact store calls ``on_fact_inserted`` / ``on_fact_deleted`` inside the
transaction that mutates the fact table, so the mart is never observably
stale. Invariants kept by this module:

- total_quantity_sold and total_sales_amount equal the sums over the live
  fact rows sharing the key
- avg_order_value = round(total_sales_amount / total_quantity_sold, 2)
- a key without live facts has no row at all, never a zero row

Line revenue is quantized to cents before it is applied, so totals are exact
sums of cent amounts and a delete exactly reverses the matching insert.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from coffee_sales.database.connection import Database
from coffee_sales.database.models import AggProductSales, FactCoffeeSale
from coffee_sales.exceptions import InvariantViolation
from coffee_sales.store.schemas import FactRow, MartRow

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

MartKey = Tuple[str, date]


def to_cents(value: Decimal) -> Decimal:
    """Round half-up to two decimal places"""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def line_revenue(quantity: int, unit_price) -> Decimal:
    """Revenue of one order line, in cents"""
    return to_cents(Decimal(quantity) * Decimal(str(unit_price)))


def average_order_value(total_sales: Decimal, total_quantity: int) -> Decimal:
    """Ratio of sums; callers guarantee total_quantity > 0"""
    return to_cents(total_sales / total_quantity)


@dataclass
class MartDiscrepancy:
    """One disagreement between the stored mart and a recomputation from facts"""
    coffee_type: str
    order_date: date
    issue: str  # missing, unexpected, mismatch
    expected: Optional[Tuple[int, Decimal, Decimal]] = None
    actual: Optional[Tuple[int, Decimal, Decimal]] = None


class ProductSalesMart:
    """
    Maintainer and reader of the product sales mart.

    Example:
        mart = ProductSalesMart(db)
        store = FactStore(db, mart)
        store.insert(row)
        mart.get("Exc", date(2024, 11, 1))
    """

    def __init__(self, db: Database):
        self.db = db

    # -------------------------------------------------------------------------
    # Incremental maintenance
    # -------------------------------------------------------------------------

    def _lookup(self, session: Session, coffee_type: str, order_date: date) -> Optional[AggProductSales]:
        # FOR UPDATE serializes concurrent writers on the same key where supported
        return session.get(AggProductSales, (coffee_type, order_date), with_for_update=True)

    def on_fact_inserted(self, session: Session, row: FactRow) -> MartRow:
        """
        Apply an inserted fact row to the mart.

        Args:
            session: Session of the transaction that inserted the fact
            row: The inserted fact

        Returns:
            MartRow: The mart row after the upsert
        """
        agg = self._lookup(session, row.coffee_type, row.order_date)

        current_quantity = agg.total_quantity_sold if agg is not None else 0
        current_sales = Decimal(agg.total_sales_amount) if agg is not None else ZERO

        new_quantity = current_quantity + row.quantity
        new_sales = to_cents(current_sales + line_revenue(row.quantity, row.unit_price))
        new_avg = average_order_value(new_sales, new_quantity)

        if agg is None:
            agg = AggProductSales(
                coffee_type=row.coffee_type,
                order_date=row.order_date,
                total_quantity_sold=new_quantity,
                total_sales_amount=new_sales,
                avg_order_value=new_avg,
            )
            session.add(agg)
        else:
            agg.total_quantity_sold = new_quantity
            agg.total_sales_amount = new_sales
            agg.avg_order_value = new_avg
        session.flush()

        logger.debug(
            "Mart row upserted",
            coffee_type=row.coffee_type,
            order_date=str(row.order_date),
            total_quantity_sold=new_quantity,
            total_sales_amount=str(new_sales),
        )
        return MartRow(
            coffee_type=row.coffee_type,
            order_date=row.order_date,
            total_quantity_sold=new_quantity,
            total_sales_amount=new_sales,
            avg_order_value=new_avg,
        )

    def on_fact_deleted(self, session: Session, row: FactRow) -> Optional[MartRow]:
        """
        Reverse a deleted fact row in the mart.

        The row is removed when its quantity drains to zero. A negative
        quantity means the mart was already inconsistent; that is logged
        and repaired by removing the row rather than raised.

        Args:
            session: Session of the transaction that deleted the fact
            row: The deleted fact

        Returns:
            The updated mart row, or None when the row was removed
        """
        agg = self._lookup(session, row.coffee_type, row.order_date)
        log = logger.bind(coffee_type=row.coffee_type, order_date=str(row.order_date), order_id=row.order_id)

        if agg is None:
            log.warning("Invariant violation: no mart row for deleted fact")
            current_quantity, current_sales = 0, ZERO
        else:
            current_quantity, current_sales = agg.total_quantity_sold, Decimal(agg.total_sales_amount)

        new_quantity = current_quantity - row.quantity
        new_sales = to_cents(current_sales - line_revenue(row.quantity, row.unit_price))

        if new_quantity > 0:
            new_avg = average_order_value(new_sales, new_quantity)
            agg.total_quantity_sold = new_quantity
            agg.total_sales_amount = new_sales
            agg.avg_order_value = new_avg
            session.flush()
            log.debug("Mart row decremented", total_quantity_sold=new_quantity, total_sales_amount=str(new_sales))
            return MartRow(
                coffee_type=row.coffee_type,
                order_date=row.order_date,
                total_quantity_sold=new_quantity,
                total_sales_amount=new_sales,
                avg_order_value=new_avg,
            )

        if agg is not None and new_quantity < 0:
            log.warning("Invariant violation: mart quantity went negative, removing row", new_quantity=new_quantity)
        elif agg is not None and new_sales != ZERO:
            log.warning("Invariant violation: drained mart row had residual sales", residual_sales=str(new_sales))

        if agg is not None:
            session.delete(agg)
            session.flush()
            log.debug("Mart row removed")
        return None

    # -------------------------------------------------------------------------
    # Full recomputation
    # -------------------------------------------------------------------------

    def _compute_from_facts(self, session: Session) -> Dict[MartKey, Tuple[int, Decimal]]:
        """Sum quantity and line revenue per key over all live facts"""
        totals: Dict[MartKey, Tuple[int, Decimal]] = {}
        result = session.execute(
            select(
                FactCoffeeSale.coffee_type,
                FactCoffeeSale.order_date,
                FactCoffeeSale.quantity,
                FactCoffeeSale.unit_price,
            )
        )
        for coffee_type, order_date, quantity, unit_price in result:
            key = (coffee_type, order_date)
            quantity_sum, sales_sum = totals.get(key, (0, ZERO))
            totals[key] = (quantity_sum + quantity, sales_sum + line_revenue(quantity, unit_price))
        return totals

    def rebuild(self, session: Session) -> int:
        """
        Replace the whole mart with a recomputation from the fact table.

        Used after bulk loads, where per-row maintenance would be wasteful.

        Returns:
            Number of mart rows written
        """
        totals = self._compute_from_facts(session)
        session.execute(delete(AggProductSales))
        session.add_all(
            AggProductSales(
                coffee_type=coffee_type,
                order_date=order_date,
                total_quantity_sold=quantity,
                total_sales_amount=to_cents(sales),
                avg_order_value=average_order_value(sales, quantity),
            )
            for (coffee_type, order_date), (quantity, sales) in totals.items()
            if quantity > 0
        )
        session.flush()
        logger.info("Product sales mart rebuilt", rows=len(totals))
        return len(totals)

    def reconcile(self, strict: bool = False) -> List[MartDiscrepancy]:
        """
        Compare the stored mart against a recomputation from facts.

        Args:
            strict: Raise InvariantViolation instead of returning discrepancies

        Returns:
            List of discrepancies; empty when the mart is consistent
        """
        with self.db.session() as session:
            totals = self._compute_from_facts(session)
            stored = {
                (agg.coffee_type, agg.order_date): (
                    agg.total_quantity_sold,
                    Decimal(agg.total_sales_amount),
                    Decimal(agg.avg_order_value),
                )
                for agg in session.scalars(select(AggProductSales))
            }

        expected = {
            key: (quantity, to_cents(sales), average_order_value(sales, quantity))
            for key, (quantity, sales) in totals.items()
        }

        discrepancies = []
        for key in sorted(set(expected) | set(stored)):
            want, have = expected.get(key), stored.get(key)
            if want == have:
                continue
            if have is None:
                issue = "missing"
            elif want is None:
                issue = "unexpected"
            else:
                issue = "mismatch"
            discrepancies.append(MartDiscrepancy(key[0], key[1], issue, expected=want, actual=have))

        if discrepancies:
            logger.warning("Product sales mart inconsistent", discrepancies=len(discrepancies))
            if strict:
                raise InvariantViolation(
                    f"Product sales mart has {len(discrepancies)} inconsistent rows",
                    details=discrepancies,
                )
        else:
            logger.info("Product sales mart consistent", rows=len(stored))

        return discrepancies

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, coffee_type: str, order_date: date) -> Optional[MartRow]:
        """Mart row for a key, or None when no live fact feeds it"""
        with self.db.session() as session:
            agg = session.get(AggProductSales, (coffee_type, order_date))
            return MartRow.model_validate(agg) if agg is not None else None

    def rows(
        self,
        coffee_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[MartRow]:
        """Mart rows, newest order date first"""
        query = select(AggProductSales)
        if coffee_type:
            query = query.where(AggProductSales.coffee_type == coffee_type)
        if start_date:
            query = query.where(AggProductSales.order_date >= start_date)
        if end_date:
            query = query.where(AggProductSales.order_date <= end_date)
        query = query.order_by(AggProductSales.order_date.desc(), AggProductSales.coffee_type)

        with self.db.session() as session:
            return [MartRow.model_validate(agg) for agg in session.scalars(query)]
