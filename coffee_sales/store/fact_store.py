"""
Fact Store

Owns the fact_coffee_sales table. Every successful insert or delete calls
the product sales mart inside the same transaction, so either the fact
mutation and the mart delta both commit or neither does.
"""

import threading
from datetime import date
from typing import Iterable, List, Optional

import polars as pl
import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from coffee_sales.database.connection import Database
from coffee_sales.database.models import FactCoffeeSale
from coffee_sales.exceptions import DuplicateKey, NotFound
from coffee_sales.store.identifiers import CustomerIdGenerator, IdGenerator
from coffee_sales.store.mart import ProductSalesMart
from coffee_sales.store.schemas import FactRow

logger = structlog.get_logger(__name__)

# Column order and dtypes of FactStore.to_frame()
FACT_FRAME_SCHEMA = {
    "order_id": pl.Utf8,
    "order_date": pl.Date,
    "quantity": pl.Int64,
    "customer_id": pl.Utf8,
    "customer_name": pl.Utf8,
    "address": pl.Utf8,
    "city": pl.Utf8,
    "country": pl.Utf8,
    "postcode": pl.Utf8,
    "loyalty_card": pl.Boolean,
    "product_id": pl.Utf8,
    "coffee_type": pl.Utf8,
    "roast_type": pl.Utf8,
    "size": pl.Float64,
    "unit_price": pl.Float64,
    "price_per_100g": pl.Float64,
    "profit": pl.Float64,
}

BULK_CHUNK_SIZE = 500


class FactStore:
    """
    Denormalized sales fact store with synchronous mart maintenance.

    Mutations are serialized through a single writer lock.

    Example:
        mart = ProductSalesMart(db)
        store = FactStore(db, mart)
        store.insert(row)
        store.delete(row.order_id)
    """

    def __init__(
        self,
        db: Database,
        mart: ProductSalesMart,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.db = db
        self.mart = mart
        self.id_generator = id_generator or CustomerIdGenerator()
        self._write_lock = threading.RLock()

    def _with_customer_id(self, row: FactRow) -> FactRow:
        if row.customer_id:
            return row
        customer_id = self.id_generator()
        logger.info("Generated customer id", order_id=row.order_id, customer_id=customer_id)
        return row.model_copy(update={"customer_id": customer_id})

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def insert(self, row: FactRow) -> FactRow:
        """
        Insert a fact row and apply it to the mart.

        Args:
            row: Fact row; a missing customer id is generated

        Returns:
            FactRow: The stored row

        Raises:
            DuplicateKey: If the order id already exists
        """
        row = self._with_customer_id(row)

        with self._write_lock, self.db.session() as session:
            if session.get(FactCoffeeSale, row.order_id) is not None:
                logger.warning("Rejected duplicate order", order_id=row.order_id)
                raise DuplicateKey(row.order_id)

            fact = FactCoffeeSale(**row.model_dump())
            session.add(fact)
            try:
                session.flush()
            except IntegrityError as e:
                logger.warning("Rejected duplicate order", order_id=row.order_id, error=str(e.orig))
                raise DuplicateKey(row.order_id) from e

            # Apply the row as stored
            session.refresh(fact)
            row = FactRow.model_validate(fact)
            self.mart.on_fact_inserted(session, row)

        logger.info(
            "Fact inserted",
            order_id=row.order_id,
            coffee_type=row.coffee_type,
            order_date=str(row.order_date),
            quantity=row.quantity,
        )
        return row

    def delete(self, order_id: str) -> FactRow:
        """
        Delete a fact row and reverse it in the mart.

        Args:
            order_id: Order to delete

        Returns:
            FactRow: The deleted row

        Raises:
            NotFound: If the order id does not exist
        """
        with self._write_lock, self.db.session() as session:
            fact = session.get(FactCoffeeSale, order_id)
            if fact is None:
                logger.warning("Delete of unknown order", order_id=order_id)
                raise NotFound(order_id)

            row = FactRow.model_validate(fact)
            session.delete(fact)
            session.flush()

            self.mart.on_fact_deleted(session, row)

        logger.info(
            "Fact deleted",
            order_id=order_id,
            coffee_type=row.coffee_type,
            order_date=str(row.order_date),
            quantity=row.quantity,
        )
        return row

    def bulk_load(self, rows: Iterable[FactRow]) -> int:
        """
        Insert many fact rows and rebuild the mart, in one transaction.

        Args:
            rows: Fact rows to insert

        Returns:
            Number of rows inserted

        Raises:
            DuplicateKey: If any order id repeats or already exists; nothing is loaded
        """
        rows = [self._with_customer_id(row) for row in rows]

        seen = set()
        for row in rows:
            if row.order_id in seen:
                raise DuplicateKey(row.order_id)
            seen.add(row.order_id)

        with self._write_lock, self.db.session() as session:
            order_ids = list(seen)
            for i in range(0, len(order_ids), BULK_CHUNK_SIZE):
                chunk = order_ids[i:i + BULK_CHUNK_SIZE]
                existing = session.scalars(
                    select(FactCoffeeSale.order_id).where(FactCoffeeSale.order_id.in_(chunk)).limit(1)
                ).first()
                if existing is not None:
                    logger.warning("Bulk load rejected, order already stored", order_id=existing)
                    raise DuplicateKey(existing)

            session.add_all(FactCoffeeSale(**row.model_dump()) for row in rows)
            session.flush()

            mart_rows = self.mart.rebuild(session)

        logger.info("Bulk load committed", facts=len(rows), mart_rows=mart_rows)
        return len(rows)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, order_id: str) -> FactRow:
        """
        Fetch one fact row.

        Raises:
            NotFound: If the order id does not exist
        """
        with self.db.session() as session:
            fact = session.get(FactCoffeeSale, order_id)
            if fact is None:
                raise NotFound(order_id)
            return FactRow.model_validate(fact)

    def exists(self, order_id: str) -> bool:
        with self.db.session() as session:
            return session.get(FactCoffeeSale, order_id) is not None

    def count(self) -> int:
        with self.db.session() as session:
            return session.scalar(select(func.count(FactCoffeeSale.order_id))) or 0

    def rows(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[FactRow]:
        """Fact rows ordered by order date then order id"""
        query = select(FactCoffeeSale)
        if start_date:
            query = query.where(FactCoffeeSale.order_date >= start_date)
        if end_date:
            query = query.where(FactCoffeeSale.order_date <= end_date)
        query = query.order_by(FactCoffeeSale.order_date, FactCoffeeSale.order_id)

        with self.db.session() as session:
            return [FactRow.model_validate(fact) for fact in session.scalars(query)]

    def to_frame(self) -> pl.DataFrame:
        """
        Snapshot of the fact table as a Polars DataFrame.

        Monetary columns are converted to floats for analytics.
        """
        records = []
        for row in self.rows():
            record = row.model_dump()
            record["unit_price"] = float(record["unit_price"])
            records.append(record)

        df = pl.DataFrame(records, schema=FACT_FRAME_SCHEMA)
        logger.debug("Fact table snapshot taken", rows=len(df))
        return df
