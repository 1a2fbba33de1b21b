# cartengine/services/checkout_service.py
import logging

from fastapi import HTTPException, status

from cartengine.schemas.coupon import ActiveDiscount, CouponFilterResult
from cartengine.schemas.delivery import DeliveryAddress, DeliveryFeeSummary
from cartengine.schemas.order import OrderGroupDraft
from cartengine.services.coupon_service import CouponService, check_coupon_eligibility
from cartengine.services.delivery_service import DeliveryFeeService
from cartengine.services.order_service import compose_order
from cartengine.services.price_service import AppStateMonitor, PriceReconciler
from cartengine.services.session_service import CheckoutSession

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Wires the pricing pipeline together for one session.

    Checkout preview:
      1. Refresh prices (must succeed, else 503).
      2. Load category metadata for the cart.
      3. Re-check the applied coupon; drop it if no longer eligible.
      4. Recompute the discount for the refreshed subtotal.
      5. Compute per-vendor delivery fees.
      6. Compose the OrderGroupDraft.
    """

    def __init__(
        self,
        reconciler: PriceReconciler,
        coupon_service: CouponService,
        delivery_service: DeliveryFeeService,
    ):
        self.reconciler = reconciler
        self.coupon_service = coupon_service
        self.delivery_service = delivery_service

    # ---- price sync lifecycle ----

    async def sync_prices(self, session: CheckoutSession) -> bool:
        synced = await self.reconciler.sync(session.cart)
        if synced:
            session.cart_changed()
        return synced

    def monitor_for(self, session: CheckoutSession) -> AppStateMonitor:
        if session.monitor is None:
            session.monitor = AppStateMonitor(lambda: self.sync_prices(session))
        return session.monitor

    # ---- coupons ----

    async def evaluate_coupons(self, session: CheckoutSession) -> CouponFilterResult:
        cart = session.cart
        return await self.coupon_service.evaluate(cart.lines, cart.total_price)

    async def apply_coupon(self, session: CheckoutSession, code: str) -> ActiveDiscount:
        """
        Apply an active coupon by code.

        Raises:
            HTTPException(404): unknown / expired code.
            HTTPException(400): coupon not eligible for the current cart.
        """
        coupon = await self.coupon_service.get_active_by_code(code)
        cart = session.cart
        categories = await self.coupon_service.load_categories(cart.lines)
        eligibility = check_coupon_eligibility(coupon, cart.lines, cart.total_price, categories)
        if not eligibility.is_eligible:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": eligibility.reason,
                    "conflicting_items": [
                        item.model_dump() for item in eligibility.conflicting_items or []
                    ],
                    "shortfall": eligibility.shortfall,
                },
            )
        return session.apply_coupon(coupon)

    async def _revalidate_discount(self, session: CheckoutSession) -> None:
        active = session.discount.active
        if active is None:
            return
        cart = session.cart
        categories = await self.coupon_service.load_categories(cart.lines)
        eligibility = check_coupon_eligibility(
            active.as_coupon(), cart.lines, cart.total_price, categories
        )
        if not eligibility.is_eligible:
            logger.info("Removing coupon %s at checkout: %s", active.code, eligibility.reason)
            session.remove_coupon()

    # ---- checkout ----

    async def delivery_fees(
        self,
        session: CheckoutSession,
        address: DeliveryAddress | None,
    ) -> DeliveryFeeSummary:
        cart = session.cart
        return await self.delivery_service.calculate(
            cart.lines,
            address,
            has_free_delivery=session.discount.includes_free_delivery,
            subtotal=cart.total_price,
        )

    async def prepare(
        self,
        session: CheckoutSession,
        address: DeliveryAddress,
    ) -> OrderGroupDraft:
        if len(session.cart) == 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        await self.reconciler.sync_for_checkout(session.cart)
        session.cart_changed()

        await self._revalidate_discount(session)

        delivery = await self.delivery_fees(session, address)
        return compose_order(session.cart.lines, session.discount.active, delivery)

    def complete(self, session: CheckoutSession) -> None:
        session.order_placed()
