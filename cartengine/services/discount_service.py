# cartengine/services/discount_service.py
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from cartengine.models.cart import CartLine
from cartengine.models.coupon import Coupon
from cartengine.schemas.coupon import ActiveDiscount
from cartengine.services.coupon_service import calculate_discount, discount_base

logger = logging.getLogger(__name__)


class DiscountStore:
    """
    Holds the single applied coupon for a session.

    The amount is derived: every cart change calls `recalculate` with
    the new subtotal, and the frozen coupon terms are re-run through
    `calculate_discount`. A subtotal that drops below the coupon's
    minimum (or an empty cart) invalidates the discount.

    When the cart lines are passed, a vendor-scoped coupon is computed
    on that vendor's subtotal, the same base the checkout breakdown uses.
    """

    def __init__(self, active: ActiveDiscount | None = None):
        self.active = active

    @property
    def discount_amount(self) -> float:
        return self.active.discount_amount if self.active else 0.0

    @property
    def includes_free_delivery(self) -> bool:
        return bool(self.active and self.active.includes_free_delivery)

    @staticmethod
    def _amount(
        coupon: Coupon,
        cart_subtotal: float,
        lines: Iterable[CartLine] | None,
    ) -> float:
        base = cart_subtotal if lines is None else discount_base(coupon, lines, cart_subtotal)
        return calculate_discount(coupon, base)

    def apply(
        self,
        coupon: Coupon,
        cart_subtotal: float,
        lines: Iterable[CartLine] | None = None,
    ) -> ActiveDiscount:
        discount = ActiveDiscount.from_coupon(coupon)
        discount.discount_amount = self._amount(coupon, cart_subtotal, lines)
        self.active = discount
        return discount

    def recalculate(
        self,
        cart_subtotal: float,
        lines: Iterable[CartLine] | None = None,
    ) -> bool:
        """
        Recompute the amount for the new subtotal.

        Returns False if the discount had to be dropped.
        """
        if self.active is None:
            return True

        if cart_subtotal <= 0 or cart_subtotal < self.active.min_order_amount:
            logger.info(
                "Coupon %s no longer applies (subtotal %.2f, minimum %.2f)",
                self.active.code,
                cart_subtotal,
                self.active.min_order_amount,
            )
            self.active = None
            return False

        self.active.discount_amount = self._amount(self.active.as_coupon(), cart_subtotal, lines)
        return True

    def remove(self) -> None:
        self.active = None

    def to_payload(self) -> dict[str, Any]:
        return {"active": self.active.model_dump(mode="json") if self.active else None}

    @classmethod
    def from_payload(cls, payload: Any) -> "DiscountStore":
        if not isinstance(payload, dict) or not payload.get("active"):
            return cls()
        try:
            return cls(ActiveDiscount.model_validate(payload["active"]))
        except ValidationError as e:
            logger.warning("Dropping persisted discount: %s", e.errors()[:1])
            return cls()
