"""
Batch Data Loader

Initial load of the fact store from the three source CSV files
(customers, orders, products):
- Column name normalization
- Type casting
- Data quality validation
- Inner join into denormalized fact rows
- Single-transaction load with mart rebuild
"""

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import polars as pl
import structlog
from pydantic import BaseModel, ValidationError

from coffee_sales.config.settings import IngestionSettings
from coffee_sales.exceptions import DataLoadError, DuplicateKey
from coffee_sales.quality.validators import (
    LOYALTY_CARD_VALUES,
    ValidationResult,
    ValidationStatus,
    create_customers_validator,
    create_orders_validator,
    create_products_validator,
)
from coffee_sales.store.fact_store import FactStore
from coffee_sales.store.schemas import FactRow

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]

NULL_VALUES = ["", "NULL", "null", "None", "NA", "N/A"]

# Normalized source names that differ from fact column names
COLUMN_ALIASES = {
    "address_line_1": "address",
    "address_line1": "address",
}

ORDER_COLUMNS = ["order_id", "order_date", "customer_id", "product_id", "quantity"]
CUSTOMER_COLUMNS = ["customer_id", "customer_name", "address", "city", "country", "postcode", "loyalty_card"]
PRODUCT_COLUMNS = ["product_id", "coffee_type", "roast_type", "size", "unit_price", "price_per_100g", "profit"]

REQUIRED_COLUMNS = {
    "orders": ORDER_COLUMNS,
    "customers": ["customer_id", "customer_name", "country"],
    "products": ["product_id", "coffee_type", "unit_price"],
}


class LoadStatus(str, Enum):
    """Batch load status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LoadResult(BaseModel):
    """Result of a batch load operation"""
    status: LoadStatus
    rows_read: int = 0
    rows_loaded: int = 0
    rows_rejected: int = 0
    validation: Dict[str, ValidationStatus] = {}
    error_message: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None


def normalize_column_name(name: str) -> str:
    """'Address Line 1' -> 'address', 'Price per 100g' -> 'price_per_100g'"""
    normalized = re.sub(r"[^0-9a-z]+", "_", name.strip().lower()).strip("_")
    return COLUMN_ALIASES.get(normalized, normalized)


class BatchLoader:
    """
    Loads customers, orders and products into the fact store.

    Example:
        loader = BatchLoader(store)
        result = loader.load(
            customers_path="data/raw/customers.csv",
            orders_path="data/raw/orders.csv",
            products_path="data/raw/products.csv",
        )
    """

    def __init__(self, store: FactStore, settings: Optional[IngestionSettings] = None):
        self.store = store
        self.settings = settings or IngestionSettings()

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def _read_csv(self, path: PathLike, dataset: str, columns: List[str]) -> pl.DataFrame:
        """Read a source file as strings and keep only the known columns"""
        path = Path(path)
        if not path.exists():
            raise DataLoadError(f"File not found: {path}")

        df = pl.read_csv(
            path,
            separator=self.settings.delimiter,
            infer_schema_length=0,
            null_values=NULL_VALUES,
        )
        df = df.rename({col: normalize_column_name(col) for col in df.columns})

        missing = [col for col in REQUIRED_COLUMNS[dataset] if col not in df.columns]
        if missing:
            raise DataLoadError(f"{dataset} file {path} is missing columns: {missing}", errors=missing)

        df = df.with_columns([
            pl.lit(None, dtype=pl.Utf8).alias(col) for col in columns if col not in df.columns
        ])
        df = df.select(columns).with_columns(pl.col(pl.Utf8).str.strip_chars())
        df = df.filter(~pl.all_horizontal(pl.all().is_null()))

        logger.info(f"Read {len(df)} rows from file", dataset=dataset, file=str(path))
        return df

    def _cast_orders(self, df: pl.DataFrame) -> pl.DataFrame:
        return df.with_columns([
            pl.col("order_date").str.strptime(pl.Date, self.settings.date_format, strict=False),
            pl.col("quantity").cast(pl.Int64, strict=False),
        ])

    def _cast_products(self, df: pl.DataFrame) -> pl.DataFrame:
        return df.with_columns([
            pl.col(col).cast(pl.Float64, strict=False)
            for col in ["size", "unit_price", "price_per_100g", "profit"]
        ])

    # -------------------------------------------------------------------------
    # Transform
    # -------------------------------------------------------------------------

    @staticmethod
    def _raise_on_failure(dataset: str, result: ValidationResult) -> None:
        if result.status == ValidationStatus.FAILED:
            raise DataLoadError(
                f"{dataset} validation failed: {result.errors}",
                errors=result.errors,
            )

    @staticmethod
    def _drop_invalid_loyalty_flags(customers: pl.DataFrame) -> pl.DataFrame:
        invalid = pl.col("loyalty_card").is_not_null() & ~pl.col("loyalty_card").is_in(LOYALTY_CARD_VALUES)
        dropped = customers.filter(invalid)
        if dropped.height:
            logger.warning(
                "Dropped customers with invalid loyalty flag",
                rows=dropped.height,
                customer_ids=dropped["customer_id"].to_list()[:10],
            )
        return customers.filter(~invalid)

    def build_facts(
        self,
        customers: pl.DataFrame,
        orders: pl.DataFrame,
        products: pl.DataFrame,
    ) -> Tuple[pl.DataFrame, Dict[str, ValidationStatus]]:
        """
        Validate the source frames and join them into fact rows.

        Customers with a loyalty flag other than Yes/No are dropped. Orders
        referencing unknown or dropped customers or unknown products are
        dropped, the same as an inner join.

        Returns:
            (fact frame, validation status per dataset)

        Raises:
            DataLoadError: If an error-severity check fails
        """
        statuses = {}

        customers_result = create_customers_validator().validate(customers)
        self._raise_on_failure("customers", customers_result)
        statuses["customers"] = customers_result.status

        customers = self._drop_invalid_loyalty_flags(customers)

        products_result = create_products_validator().validate(products)
        self._raise_on_failure("products", products_result)
        statuses["products"] = products_result.status

        orders_result = create_orders_validator(customers, products).validate(orders)
        self._raise_on_failure("orders", orders_result)
        statuses["orders"] = orders_result.status

        facts = (
            orders
            .join(customers, on="customer_id", how="inner")
            .join(products, on="product_id", how="inner")
            .sort(["order_date", "order_id"])
        )

        rejected = len(orders) - len(facts)
        if rejected:
            logger.warning("Dropped orders with unknown customer or product", rows=rejected)

        return facts, statuses

    @staticmethod
    def to_fact_rows(facts: pl.DataFrame) -> List[FactRow]:
        """Convert a joined fact frame into validated FactRow objects"""
        try:
            return [FactRow(**record) for record in facts.iter_rows(named=True)]
        except ValidationError as e:
            raise DataLoadError(f"Invalid fact row: {e.errors()[0]}", errors=e.errors()) from e

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    def load(
        self,
        customers_path: Optional[PathLike] = None,
        orders_path: Optional[PathLike] = None,
        products_path: Optional[PathLike] = None,
    ) -> LoadResult:
        """
        Load the three source files into the fact store.

        Paths default to the configured source directory. A rejected load
        leaves the store untouched and is reported through the result.

        Returns:
            LoadResult: Result of the load operation
        """
        customers_path = customers_path or self.settings.customers_path
        orders_path = orders_path or self.settings.orders_path
        products_path = products_path or self.settings.products_path

        started_at = datetime.utcnow()
        result = LoadResult(status=LoadStatus.RUNNING, started_at=started_at)

        logger.info(
            "Starting batch load",
            customers=str(customers_path),
            orders=str(orders_path),
            products=str(products_path),
        )

        try:
            customers = self._read_csv(customers_path, "customers", CUSTOMER_COLUMNS)
            orders = self._cast_orders(self._read_csv(orders_path, "orders", ORDER_COLUMNS))
            products = self._cast_products(self._read_csv(products_path, "products", PRODUCT_COLUMNS))
            result.rows_read = len(orders)

            facts, result.validation = self.build_facts(customers, orders, products)
            rows = self.to_fact_rows(facts)

            result.rows_loaded = self.store.bulk_load(rows)
            result.rows_rejected = result.rows_read - result.rows_loaded
            result.status = LoadStatus.COMPLETED

            logger.info(
                "Batch load completed",
                rows_loaded=result.rows_loaded,
                rows_rejected=result.rows_rejected,
            )

        except (DataLoadError, DuplicateKey) as e:
            result.status = LoadStatus.FAILED
            result.error_message = str(e)
            result.rows_loaded = 0
            logger.error("Batch load failed", error=str(e), error_type=type(e).__name__)

        result.completed_at = datetime.utcnow()
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()
        return result
