# cartengine/models/product.py
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

StockStatus = Literal["in_stock", "low_stock", "out_of_stock"]


def _as_str_id(v: Any) -> Any:
    # Supabase returns uuid columns as strings, but callers may pass uuid.UUID.
    if v is None or isinstance(v, str):
        return v
    return str(v)


class Product(SQLModel):
    """
    Catalog snapshot of a product, as embedded in a cart line.

    The authoritative copy lives in the backend `products` table; only
    the fields the pricing pipeline needs are kept here. Everything but
    `id` and `price` is optional because older persisted carts stored
    partial snapshots.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    vendor_id: str | None = None
    category_id: str | None = None
    name: str = ""
    unit: str | None = None
    price: float = Field(ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    is_veg: bool | None = None
    stock_status: StockStatus | None = None

    @field_validator("id", "vendor_id", "category_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        return _as_str_id(v)

    @property
    def effective_price(self) -> float:
        """discount_price if present and lower than price, else price."""
        if self.discount_price is not None and self.discount_price < self.price:
            return self.discount_price
        return self.price


class PriceQuote(SQLModel):
    """
    One row of the batched catalog price lookup.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    price: float = Field(ge=0)
    discount_price: float | None = Field(default=None, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str_id(v)


class Category(SQLModel):
    """
    Category metadata; only used by the veg/non-veg coupon heuristic.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    slug: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str_id(v)

    @field_validator("name", "slug", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v
