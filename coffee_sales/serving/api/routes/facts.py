"""
Fact Store Endpoints

Insert, read and delete order lines. Every mutation updates the product
sales mart before the response is sent.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
import structlog

from coffee_sales.ingestion.batch_loader import LoadResult
from coffee_sales.serving.api.dependencies import get_services
from coffee_sales.services import CoffeeSalesServices
from coffee_sales.store.schemas import FactRow

router = APIRouter()
logger = structlog.get_logger(__name__)


class LoadRequest(BaseModel):
    """Source file overrides for a bulk load"""
    customers_path: Optional[str] = None
    orders_path: Optional[str] = None
    products_path: Optional[str] = None


class FactCount(BaseModel):
    total: int


@router.get("", response_model=FactCount)
def count_facts(services: CoffeeSalesServices = Depends(get_services)) -> FactCount:
    """Number of live fact rows"""
    return FactCount(total=services.store.count())


@router.post("", response_model=FactRow, status_code=status.HTTP_201_CREATED)
def insert_fact(row: FactRow, services: CoffeeSalesServices = Depends(get_services)) -> FactRow:
    """
    Insert one order line.

    Returns 409 if the order id already exists.
    """
    return services.store.insert(row)


@router.post("/load", response_model=LoadResult)
def load_facts(
    request: Optional[LoadRequest] = None,
    services: CoffeeSalesServices = Depends(get_services),
) -> LoadResult:
    """Bulk load the source files; paths default to the configured source directory"""
    request = request or LoadRequest()
    logger.info("Bulk load requested", **request.model_dump())
    return services.loader.load(
        customers_path=request.customers_path,
        orders_path=request.orders_path,
        products_path=request.products_path,
    )


@router.get("/{order_id}", response_model=FactRow)
def get_fact(order_id: str, services: CoffeeSalesServices = Depends(get_services)) -> FactRow:
    """Fetch one order line; 404 if absent"""
    return services.store.get(order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_fact(order_id: str, services: CoffeeSalesServices = Depends(get_services)) -> Response:
    """Delete one order line; 404 if absent"""
    services.store.delete(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
