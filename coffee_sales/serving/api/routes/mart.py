"""
Product Sales Mart Endpoints
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coffee_sales.serving.api.dependencies import get_services
from coffee_sales.services import CoffeeSalesServices
from coffee_sales.store.schemas import MartRow

router = APIRouter()


class ReconcileResponse(BaseModel):
    """Outcome of comparing the mart with the fact table"""
    consistent: bool
    discrepancies: int


@router.get("/product-sales", response_model=List[MartRow])
def list_product_sales(
    coffee_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    services: CoffeeSalesServices = Depends(get_services),
) -> List[MartRow]:
    """Mart rows, newest order date first"""
    return services.mart.rows(coffee_type=coffee_type, start_date=start_date, end_date=end_date)


@router.get("/product-sales/reconcile", response_model=ReconcileResponse)
def reconcile_product_sales(services: CoffeeSalesServices = Depends(get_services)) -> ReconcileResponse:
    discrepancies = services.mart.reconcile()
    return ReconcileResponse(consistent=not discrepancies, discrepancies=len(discrepancies))
