"""
Prefect Workflow Orchestration - Coffee Sales

Scheduled workflows for the coffee sales pipeline:
- Monthly coffee sales report for the current calendar month
- Bulk load of the raw CSV files into the fact store
"""

from datetime import date
from pathlib import Path
from typing import Optional

import polars as pl
from prefect import flow, task, get_run_logger

from coffee_sales.config import get_settings
from coffee_sales.reporting.schedule import report_window
from coffee_sales.services import create_services

MONTHLY_CRON = "0 0 1 * *"


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="generate_coffee_sales_report",
    description="Run the coffee sales report for one window and country",
    retries=2,
    retry_delay_seconds=60,
)
def generate_coffee_sales_report(start_date: date, end_date: date, country: str) -> list:
    """Run the report and return its rows as plain dicts"""
    logger = get_run_logger()

    services = create_services()
    try:
        rows = services.reporter.generate_report(start_date, end_date, country)
    finally:
        services.close()

    logger.info(f"Report for {country} {start_date}..{end_date}: {len(rows)} rows")
    return [row.model_dump() for row in rows]


@task(
    name="write_report",
    description="Write report rows to the reporting output directory",
)
def write_report(rows: list, start_date: date, country: str) -> Optional[str]:
    """Write the rows as CSV; returns the file path or None when empty"""
    logger = get_run_logger()

    if not rows:
        logger.info("Report is empty, nothing written")
        return None

    output_dir = Path(get_settings().reporting.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    slug = country.lower().replace(" ", "_")
    path = output_dir / f"coffee_sales_{slug}_{start_date:%Y_%m}.csv"

    df = pl.DataFrame(rows).with_columns(pl.col("total_sales").cast(pl.Float64))
    df.write_csv(path)

    logger.info(f"Report written to {path}")
    return str(path)


@task(
    name="load_source_files",
    description="Load customers, orders and products into the fact store",
    retries=3,
    retry_delay_seconds=60,
)
def load_source_files(source_dir: Optional[str] = None) -> dict:
    """Bulk load the three source files and rebuild the product sales mart"""
    logger = get_run_logger()

    services = create_services()
    try:
        paths = {}
        if source_dir:
            ingestion = services.settings.ingestion
            paths = {
                "customers_path": Path(source_dir) / ingestion.customers_file,
                "orders_path": Path(source_dir) / ingestion.orders_file,
                "products_path": Path(source_dir) / ingestion.products_file,
            }
        result = services.loader.load(**paths)
    finally:
        services.close()

    logger.info(
        f"Bulk load {result.status.value}: {result.rows_loaded} loaded, "
        f"{result.rows_rejected} rejected"
    )
    return result.model_dump(mode="json")


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="monthly_coffee_sales_report",
    description="Coffee sales report for the current calendar month",
)
def monthly_coffee_sales_report(
    run_date: Optional[date] = None,
    country: Optional[str] = None,
    previous_month: bool = False,
) -> dict:
    """
    Monthly report flow.

    The window runs from the first to the last day of the month containing
    ``run_date`` (today by default), or of the month before it when
    ``previous_month`` is set. The country defaults to the configured
    reporting country.
    """
    logger = get_run_logger()

    start_date, end_date = report_window(run_date, previous_month)
    country = country or get_settings().reporting.default_country

    logger.info(f"Starting monthly coffee sales report for {start_date:%Y-%m}")

    rows = generate_coffee_sales_report(start_date, end_date, country)
    output_path = write_report(rows, start_date, country)

    return {
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "country": country,
        "rows": len(rows),
        "output_path": output_path,
    }


@flow(
    name="load_coffee_sales",
    description="Bulk load raw coffee sales files",
)
def load_coffee_sales(source_dir: Optional[str] = None) -> dict:
    """Load the raw files; fails the flow run when the load is rejected"""
    logger = get_run_logger()

    result = load_source_files(source_dir)
    if result["status"] == "failed":
        logger.error(f"Bulk load failed: {result['error_message']}")
        raise RuntimeError(result["error_message"])

    return result


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    monthly_coffee_sales_report.serve(
        name="monthly-coffee-sales-report",
        cron=MONTHLY_CRON,
    )
