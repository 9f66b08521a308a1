"""
Analytics API Endpoints

Business metrics computed over a snapshot of the fact table.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
import structlog

from coffee_sales.serving.api.dependencies import get_services
from coffee_sales.services import CoffeeSalesServices

router = APIRouter()
logger = structlog.get_logger(__name__)


class MonthlySales(BaseModel):
    """Sales for one month"""
    month: str
    total_sales: float
    avg_order_value: float
    sales_category: str


class CountryCustomers(BaseModel):
    """Distinct customers in one country"""
    country: str
    distinct_customer_count: int


class CategorySales(BaseModel):
    """Sales for one coffee type"""
    coffee_type: str
    total_sales: float
    avg_order_value: float


class CustomerLifetimeValue(BaseModel):
    """CLV and its factors"""
    avg_value_of_sale: float
    avg_number_of_transactions: float
    avg_customer_lifespan_months: float
    customer_lifetime_value: float


class LoyaltyImpact(BaseModel):
    """Revenue by loyalty card status"""
    loyalty_status: str
    customer_count: int
    total_sales: float
    avg_revenue_per_customer: float


@router.get("/monthly-sales", response_model=List[MonthlySales])
def get_monthly_sales(services: CoffeeSalesServices = Depends(get_services)) -> List[MonthlySales]:
    """Monthly totals with High / Moderate / Low categories"""
    df = services.metrics.monthly_sales()
    logger.info("Monthly sales computed", months=len(df))
    return [MonthlySales(**record) for record in df.to_dicts()]


@router.get("/customers-by-country", response_model=List[CountryCustomers])
def get_customers_by_country(services: CoffeeSalesServices = Depends(get_services)) -> List[CountryCustomers]:
    df = services.metrics.customers_by_country()
    return [CountryCustomers(**record) for record in df.to_dicts()]


@router.get("/category-sales", response_model=List[CategorySales])
def get_category_sales(services: CoffeeSalesServices = Depends(get_services)) -> List[CategorySales]:
    df = services.metrics.category_sales()
    return [CategorySales(**record) for record in df.to_dicts()]


@router.get("/customer-lifetime-value", response_model=CustomerLifetimeValue)
def get_customer_lifetime_value(services: CoffeeSalesServices = Depends(get_services)) -> CustomerLifetimeValue:
    summary = services.metrics.customer_lifetime_value()
    return CustomerLifetimeValue(**summary.to_dict())


@router.get("/loyalty-impact", response_model=List[LoyaltyImpact])
def get_loyalty_impact(services: CoffeeSalesServices = Depends(get_services)) -> List[LoyaltyImpact]:
    df = services.metrics.loyalty_impact()
    return [LoyaltyImpact(**record) for record in df.to_dicts()]
