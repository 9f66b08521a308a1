"""
Coffee Sales Report

Parameterized per-customer report over the fact table for a date window and
country. Pure read: running it twice without an intervening mutation yields
the same rows in the same order.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

import structlog
from pydantic import BaseModel
from sqlalchemy import and_, func, select

from coffee_sales.database.connection import Database
from coffee_sales.database.models import FactCoffeeSale
from coffee_sales.store.mart import to_cents

logger = structlog.get_logger(__name__)

# Loyalty card holders qualify for a free cup above this many units
FREE_CUP_QUANTITY_THRESHOLD = 4


class ReportRow(BaseModel):
    """One customer / coffee type group of the coffee sales report"""
    customer_id: str
    customer_name: str
    coffee_type: str
    loyalty_card: bool
    country: str
    city: Optional[str]
    total_quantity: int
    total_sales: Decimal
    visit_count: int
    free_cup_eligibility: bool


def is_free_cup_eligible(loyalty_card: bool, total_quantity: int) -> bool:
    return loyalty_card and total_quantity > FREE_CUP_QUANTITY_THRESHOLD


class SalesReporter:
    """
    Runs the coffee sales report against a fact store database.

    Example:
        reporter = SalesReporter(db)
        rows = reporter.generate_report(date(2019, 4, 12), date(2021, 5, 12), "United States")
    """

    def __init__(self, db: Database):
        self.db = db

    def generate_report(self, start_date: date, end_date: date, country: str) -> List[ReportRow]:
        """
        Group facts in [start_date, end_date] for one country by customer,
        coffee type, loyalty status and city.

        Args:
            start_date: First order date included
            end_date: Last order date included
            country: Exact country name to filter on

        Returns:
            Rows ordered by total sales descending; empty when nothing matches
        """
        total_quantity = func.sum(FactCoffeeSale.quantity).label("total_quantity")
        total_sales = func.sum(FactCoffeeSale.quantity * FactCoffeeSale.unit_price).label("total_sales")
        visit_count = func.count(FactCoffeeSale.order_id).label("visit_count")

        query = (
            select(
                FactCoffeeSale.customer_id,
                FactCoffeeSale.customer_name,
                FactCoffeeSale.coffee_type,
                FactCoffeeSale.loyalty_card,
                FactCoffeeSale.country,
                FactCoffeeSale.city,
                total_quantity,
                total_sales,
                visit_count,
            )
            .where(
                and_(
                    FactCoffeeSale.order_date >= start_date,
                    FactCoffeeSale.order_date <= end_date,
                    FactCoffeeSale.country == country,
                )
            )
            .group_by(
                FactCoffeeSale.customer_id,
                FactCoffeeSale.customer_name,
                FactCoffeeSale.coffee_type,
                FactCoffeeSale.loyalty_card,
                FactCoffeeSale.country,
                FactCoffeeSale.city,
            )
            .order_by(
                total_sales.desc(),
                FactCoffeeSale.customer_id,
                FactCoffeeSale.coffee_type,
                FactCoffeeSale.city,
            )
        )

        with self.db.session() as session:
            result = session.execute(query).all()

        rows = [
            ReportRow(
                customer_id=r.customer_id,
                customer_name=r.customer_name,
                coffee_type=r.coffee_type,
                loyalty_card=bool(r.loyalty_card),
                country=r.country,
                city=r.city,
                total_quantity=int(r.total_quantity),
                total_sales=to_cents(Decimal(str(r.total_sales))),
                visit_count=r.visit_count,
                free_cup_eligibility=is_free_cup_eligible(bool(r.loyalty_card), int(r.total_quantity)),
            )
            for r in result
        ]

        logger.info(
            "Coffee sales report generated",
            start_date=str(start_date),
            end_date=str(end_date),
            country=country,
            rows=len(rows),
        )
        return rows
