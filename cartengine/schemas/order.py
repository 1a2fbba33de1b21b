# cartengine/schemas/order.py
from pydantic import ConfigDict
from sqlmodel import SQLModel

from cartengine.schemas.delivery import DeliveryAddress, FreeDeliveryReason


class CheckoutRequest(SQLModel):
    """
    Payload for building the checkout breakdown.
    """

    model_config = ConfigDict(extra="forbid")

    address: DeliveryAddress


class OrderLineDraft(SQLModel):
    product_id: str
    name: str
    unit: str | None = None
    quantity: int
    unit_price: float
    discount_price: float | None = None
    effective_price: float
    line_total: float


class VendorOrderDraft(SQLModel):
    """
    One vendor's part of the order group.

    `discount` is only non-zero when a vendor-scoped coupon targets
    this vendor; whole-order discounts live on the group.
    """

    vendor_id: str | None
    items: list[OrderLineDraft]
    item_count: int
    subtotal: float
    delivery_fee: float
    original_delivery_fee: float
    distance_km: float | None = None
    discount: float = 0


class OrderGroupDraft(SQLModel):
    """
    Vendor-partitioned, fee- and discount-resolved checkout breakdown.

    Handed to the order-creation collaborator as-is; nothing here is
    persisted by this service.
    """

    vendors: list[VendorOrderDraft]
    total_items: int
    subtotal: float
    total_delivery_fee: float
    original_delivery_fee: float
    discount_amount: float
    coupon_id: str | None = None
    coupon_code: str | None = None
    discount_vendor_id: str | None = None
    free_delivery_reason: FreeDeliveryReason | None = None
    delivery_warning: str | None = None
    grand_total: float
