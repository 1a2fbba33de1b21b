# cartengine/schemas/delivery.py
from typing import Literal

from sqlmodel import SQLModel, Field

FreeDeliveryReason = Literal["coupon", "minimum_order"]


class DeliveryAddress(SQLModel):
    """
    The selected delivery address; only its id and coordinates matter here.
    """

    id: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class VendorLocation(SQLModel):
    latitude: float
    longitude: float


class VendorDeliveryInfo(SQLModel):
    """
    Delivery fee for one vendor present in the cart.

    `original_fee` keeps the looked-up (or fallback) fee so the client
    can show a strikethrough when delivery is free.
    """

    vendor_id: str
    distance_km: float
    original_fee: float
    delivery_fee: float
    is_fallback: bool = False


class DeliveryFeeSummary(SQLModel):
    vendors: list[VendorDeliveryInfo] = []
    total_delivery_fee: float = 0
    original_delivery_fee: float = 0
    vendor_count: int = 0

    is_free_delivery: bool = False
    free_delivery_reason: FreeDeliveryReason | None = None
    qualifies_by_coupon: bool = False
    qualifies_by_minimum: bool = False
    amount_to_free_delivery: float = 0

    # Non-blocking warning when one or more vendors used fallback values
    error: str | None = None
    failed_vendor_ids: list[str] = []


class ServiceabilityRead(SQLModel):
    is_serviceable: bool
    region: str | None = None
