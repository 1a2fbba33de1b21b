# cartengine/schemas/coupon.py
from sqlmodel import SQLModel

from cartengine.models.coupon import Coupon, CouponScope, DiscountType


class ConflictingItem(SQLModel):
    """
    A cart line that blocks a coupon (e.g. non-veg item on a veg coupon).
    """

    id: str
    name: str
    category: str | None = None


class CouponEligibility(SQLModel):
    """
    Result of checking one coupon against the cart.

    Ineligibility is a normal outcome, not an error: `reason` is meant
    for display, `shortfall` and `conflicting_items` drive suggestions.
    """

    is_eligible: bool
    reason: str | None = None
    conflicting_items: list[ConflictingItem] | None = None
    shortfall: float | None = None


class CouponEvaluation(SQLModel):
    coupon: Coupon
    eligibility: CouponEligibility
    discount: float
    suggestions: list[str] = []


class CouponFilterResult(SQLModel):
    eligible: list[CouponEvaluation]
    ineligible: list[CouponEvaluation]
    all: list[CouponEvaluation]


class CouponApply(SQLModel):
    """
    Payload for applying one of the active coupons by code.
    """

    code: str


class ActiveDiscount(SQLModel):
    """
    The single applied coupon: frozen terms + computed amount.

    `discount_amount` is always recomputed from the terms against the
    current subtotal; it never exceeds that subtotal.
    """

    coupon_id: str
    code: str
    discount_type: DiscountType
    discount_value: float
    max_discount: float | None = None
    min_order_amount: float = 0
    applicable_to: CouponScope = "all"
    applicable_id: str | None = None
    includes_free_delivery: bool = False
    discount_amount: float = 0

    @classmethod
    def from_coupon(cls, coupon: Coupon) -> "ActiveDiscount":
        return cls(
            coupon_id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            max_discount=coupon.max_discount,
            min_order_amount=coupon.min_order_amount,
            applicable_to=coupon.applicable_to,
            applicable_id=coupon.applicable_id,
            includes_free_delivery=coupon.includes_free_delivery,
        )

    def as_coupon(self) -> Coupon:
        """Rebuild a Coupon from the frozen terms (for eligibility checks)."""
        return Coupon(
            id=self.coupon_id,
            code=self.code,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            max_discount=self.max_discount,
            min_order_amount=self.min_order_amount,
            applicable_to=self.applicable_to,
            applicable_id=self.applicable_id,
            includes_free_delivery=self.includes_free_delivery,
        )
