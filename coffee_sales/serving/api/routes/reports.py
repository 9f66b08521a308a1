"""
Coffee Sales Report Endpoint
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
import structlog

from coffee_sales.reporting.report import ReportRow
from coffee_sales.reporting.schedule import month_window
from coffee_sales.serving.api.dependencies import get_services
from coffee_sales.services import CoffeeSalesServices

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/coffee-sales", response_model=List[ReportRow])
def coffee_sales_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    country: Optional[str] = None,
    services: CoffeeSalesServices = Depends(get_services),
) -> List[ReportRow]:
    """
    Per-customer sales for a date window and country.

    Dates default to the current calendar month and the country to the
    configured default.
    """
    default_start, default_end = month_window()
    start_date = start_date or default_start
    end_date = end_date or default_end
    country = country or services.settings.reporting.default_country

    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    return services.reporter.generate_report(start_date, end_date, country)
