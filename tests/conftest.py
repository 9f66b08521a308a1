"""
Test Suite Configuration
"""
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Generator

import polars as pl
import pytest

from coffee_sales.config.settings import (
    DatabaseSettings,
    IngestionSettings,
    ReportingSettings,
    Settings,
)
from coffee_sales.database.connection import Database, create_database
from coffee_sales.reporting.report import SalesReporter
from coffee_sales.services import CoffeeSalesServices, create_services
from coffee_sales.store.fact_store import FactStore
from coffee_sales.store.identifiers import CustomerIdGenerator
from coffee_sales.store.mart import ProductSalesMart
from coffee_sales.store.schemas import FactRow


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings backed by an in-memory database"""
    return Settings(
        app_env="testing",
        debug=True,
        database=DatabaseSettings(url="sqlite:///:memory:"),
        ingestion=IngestionSettings(source_dir=str(tmp_path / "raw")),
        reporting=ReportingSettings(output_dir=str(tmp_path / "reports")),
    )


@pytest.fixture
def database(test_settings: Settings) -> Generator[Database, None, None]:
    """Fresh in-memory database with the schema created"""
    db = create_database(test_settings.database)
    yield db
    db.dispose()


@pytest.fixture
def mart(database: Database) -> ProductSalesMart:
    return ProductSalesMart(database)


@pytest.fixture
def store(database: Database, mart: ProductSalesMart) -> FactStore:
    return FactStore(database, mart, id_generator=CustomerIdGenerator(seed=42))


@pytest.fixture
def reporter(database: Database) -> SalesReporter:
    return SalesReporter(database)


@pytest.fixture
def services(test_settings: Settings, database: Database) -> CoffeeSalesServices:
    return create_services(
        test_settings,
        database=database,
        id_generator=CustomerIdGenerator(seed=42),
    )


@pytest.fixture
def make_fact() -> Callable[..., FactRow]:
    """Factory for fact rows; keyword arguments override the defaults"""
    def factory(**overrides) -> FactRow:
        values = {
            "order_id": "QEV-37451-860",
            "order_date": date(2024, 11, 1),
            "quantity": 2,
            "customer_id": "17670-51384-MA",
            "customer_name": "Aloisia Allner",
            "address": "7 Tomscot Trail",
            "city": "Clearwater",
            "country": "United States",
            "postcode": "33755",
            "loyalty_card": True,
            "product_id": "E-M-0.5",
            "coffee_type": "Exc",
            "roast_type": "M",
            "size": 0.5,
            "unit_price": Decimal("25.875"),
            "price_per_100g": 5.175,
            "profit": 2.84625,
        }
        values.update(overrides)
        return FactRow(**values)

    return factory


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Create sample customers DataFrame for testing"""
    return pl.DataFrame({
        "customer_id": ["17670-51384-MA", "73342-18763-UW", "21125-22134-PX"],
        "customer_name": ["Aloisia Allner", "Piotr Bote", "Jami Redholes"],
        "address": ["7 Tomscot Trail", "2 Sutteridge Place", "5 Anhalt Center"],
        "city": ["Clearwater", "Cork", "Chicago"],
        "country": ["United States", "Ireland", "United States"],
        "postcode": ["33755", "T12", "60681"],
        "loyalty_card": ["Yes", "No", "Yes"],
    })


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Create sample products DataFrame for testing"""
    return pl.DataFrame({
        "product_id": ["E-M-0.5", "R-L-2.5", "A-D-1"],
        "coffee_type": ["Exc", "Rob", "Ara"],
        "roast_type": ["M", "L", "D"],
        "size": [0.5, 2.5, 1.0],
        "unit_price": [25.875, 27.485, 9.95],
        "price_per_100g": [5.175, 1.0994, 0.995],
        "profit": [2.84625, 1.6491, 0.8955],
    })


@pytest.fixture
def sample_orders_df() -> pl.DataFrame:
    """Create sample orders DataFrame for testing"""
    return pl.DataFrame({
        "order_id": ["QEV-37451-860", "FAA-43335-268", "KAC-83089-793", "CVP-18956-553"],
        "order_date": [date(2019, 9, 5), date(2019, 9, 20), date(2020, 1, 10), date(2021, 6, 4)],
        "customer_id": ["17670-51384-MA", "17670-51384-MA", "73342-18763-UW", "21125-22134-PX"],
        "product_id": ["E-M-0.5", "R-L-2.5", "A-D-1", "E-M-0.5"],
        "quantity": [2, 5, 1, 3],
    })


@pytest.fixture
def source_files(tmp_path: Path) -> dict:
    """Source CSV files with the dataset column headers"""
    raw = tmp_path / "raw"
    raw.mkdir(exist_ok=True)

    customers = raw / "customers.csv"
    customers.write_text(
        "Customer ID,Customer Name,Email,Phone Number,Address Line 1,City,Country,Postcode,Loyalty Card\n"
        "17670-51384-MA,Aloisia Allner,aallner0@lulu.com,+1 (694) 540-6137,7 Tomscot Trail,Clearwater,United States,33755,Yes\n"
        "73342-18763-UW,Piotr Bote,,+353 (913) 881-2082,2 Sutteridge Place,Cork,Ireland,T12,No\n"
        "21125-22134-PX,Jami Redholes,jredholes2@tmall.com,,5 Anhalt Center,Chicago,United States,60681,Yes\n"
    )

    products = raw / "products.csv"
    products.write_text(
        "Product ID,Coffee Type,Roast Type,Size,Unit Price,Price per 100g,Profit\n"
        "E-M-0.5,Exc,M,0.5,25.875,5.175,2.84625\n"
        "R-L-2.5,Rob,L,2.5,27.485,1.0994,1.6491\n"
        "A-D-1,Ara,D,1,9.95,0.995,0.8955\n"
    )

    orders = raw / "orders.csv"
    orders.write_text(
        "Order ID,Order Date,Customer ID,Product ID,Quantity\n"
        "QEV-37451-860,2019-09-05,17670-51384-MA,E-M-0.5,2\n"
        "FAA-43335-268,2019-09-20,17670-51384-MA,R-L-2.5,5\n"
        "KAC-83089-793,2020-01-10,73342-18763-UW,A-D-1,1\n"
        "CVP-18956-553,2021-06-04,21125-22134-PX,E-M-0.5,3\n"
        "IPP-31994-879,2021-06-05,99999-99999-ZZ,E-M-0.5,1\n"
    )

    return {
        "customers_path": customers,
        "orders_path": orders,
        "products_path": products,
    }
