"""
Service Wiring

Builds the component graph from one explicit Database handle. The mart is
registered with the fact store once, here.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from coffee_sales.config.settings import Settings, get_settings
from coffee_sales.database.connection import Database, create_database
from coffee_sales.ingestion.batch_loader import BatchLoader
from coffee_sales.reporting.metrics import SalesMetrics
from coffee_sales.reporting.report import SalesReporter
from coffee_sales.store.fact_store import FactStore
from coffee_sales.store.identifiers import IdGenerator
from coffee_sales.store.mart import ProductSalesMart

logger = structlog.get_logger(__name__)


@dataclass
class CoffeeSalesServices:
    """All components sharing one store handle"""
    settings: Settings
    db: Database
    mart: ProductSalesMart
    store: FactStore
    reporter: SalesReporter
    metrics: SalesMetrics
    loader: BatchLoader

    def close(self) -> None:
        self.db.dispose()


def create_services(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    id_generator: Optional[IdGenerator] = None,
) -> CoffeeSalesServices:
    """
    Create the fact store, mart, reporter, metrics and loader.

    Args:
        settings: Application settings; defaults to the cached settings
        database: Existing store handle; created from settings when omitted
        id_generator: Customer id generator for rows without one
    """
    settings = settings or get_settings()
    db = database or create_database(settings.database)

    mart = ProductSalesMart(db)
    store = FactStore(db, mart, id_generator=id_generator)

    services = CoffeeSalesServices(
        settings=settings,
        db=db,
        mart=mart,
        store=store,
        reporter=SalesReporter(db),
        metrics=SalesMetrics(store, settings.reporting),
        loader=BatchLoader(store, settings.ingestion),
    )
    logger.debug("Services created", environment=settings.app_env)
    return services
