# cartengine/models/coupon.py
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel, Field

DiscountType = Literal["percent", "flat"]
CouponScope = Literal["all", "category", "product", "vendor"]


class Coupon(SQLModel):
    """
    Coupon row from the backend `coupons` table.

    Backend column names are accepted as-is:
      - discount_type 'percentage' -> 'percent'
      - max_discount_amount        -> max_discount

    Usage fields (usage_limit, usage_limit_per_user, usage_count, dates)
    are carried for display only; they are enforced server-side.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    code: str
    description: str | None = None

    discount_type: DiscountType
    discount_value: float = Field(default=0, ge=0)
    max_discount: float | None = Field(default=None, ge=0)
    min_order_amount: float = Field(default=0, ge=0)

    applicable_to: CouponScope = "all"
    applicable_id: str | None = None
    includes_free_delivery: bool = False

    usage_limit: int | None = None
    usage_limit_per_user: int | None = None
    usage_count: int = 0
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def from_backend_columns(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "max_discount" not in data and "max_discount_amount" in data:
            data["max_discount"] = data.pop("max_discount_amount")

        if data.get("discount_type") == "percentage":
            data["discount_type"] = "percent"

        for key in ("id", "applicable_id"):
            if data.get(key) is not None:
                data[key] = str(data[key])

        # nullable numeric columns
        for key in ("discount_value", "min_order_amount", "usage_count"):
            if data.get(key) is None:
                data.pop(key, None)
        if data.get("includes_free_delivery") is None:
            data.pop("includes_free_delivery", None)
        if data.get("applicable_to") is None:
            data.pop("applicable_to", None)

        return data
