"""
Row Schemas

Pydantic models for rows crossing the store boundary. FactRow is the unit of
insertion and deletion; MartRow is the read model of the product sales mart.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Scale of the fact table unit_price column
UNIT_PRICE_QUANTUM = Decimal("0.0001")

TRUE_FLAGS = {"yes", "y", "true", "t", "1"}
FALSE_FLAGS = {"no", "n", "false", "f", "0", ""}


def parse_flag(value: Any) -> bool:
    """Parse a boolean-valued string such as the source 'Yes'/'No' loyalty flag"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in TRUE_FLAGS:
        return True
    if text in FALSE_FLAGS:
        return False
    raise ValueError(f"Not a boolean flag: {value!r}")


class FactRow(BaseModel):
    """One order line with joined customer and product attributes"""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    order_id: str = Field(min_length=1, max_length=50)
    order_date: date
    quantity: int = Field(gt=0)

    customer_id: Optional[str] = Field(default=None, max_length=50)
    customer_name: str
    address: Optional[str] = None
    city: Optional[str] = None
    country: str
    postcode: Optional[str] = None
    loyalty_card: bool = False

    product_id: str
    coffee_type: str
    roast_type: Optional[str] = None
    size: Optional[float] = None
    unit_price: Decimal = Field(ge=0)
    price_per_100g: Optional[float] = None
    profit: Optional[float] = None

    @field_validator("loyalty_card", mode="before")
    @classmethod
    def validate_loyalty_card(cls, v: Any) -> bool:
        return parse_flag(v)

    @field_validator("unit_price")
    @classmethod
    def validate_unit_price(cls, v: Decimal) -> Decimal:
        return v.quantize(UNIT_PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    @field_validator("postcode", mode="before")
    @classmethod
    def validate_postcode(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @property
    def mart_key(self) -> tuple:
        """(coffee_type, order_date) key of the mart row this fact feeds"""
        return (self.coffee_type, self.order_date)


class MartRow(BaseModel):
    """Product sales mart row for one (coffee type, order date)"""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    coffee_type: str
    order_date: date
    total_quantity_sold: int
    total_sales_amount: Decimal
    avg_order_value: Decimal
