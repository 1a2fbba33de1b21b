# cartengine/routers/deps.py
from functools import lru_cache

from fastapi import Depends

from cartengine.core.auth import require_customer
from cartengine.repositories.coupon_repo import CouponRepository
from cartengine.repositories.product_repo import ProductRepository
from cartengine.repositories.vendor_repo import DeliveryFeeRepository, VendorRepository
from cartengine.services.checkout_service import CheckoutService
from cartengine.services.coupon_service import CouponService
from cartengine.services.delivery_service import DeliveryFeeService
from cartengine.services.price_service import PriceReconciler
from cartengine.services.session_service import CheckoutSession, SessionRegistry


@lru_cache
def get_registry() -> SessionRegistry:
    return SessionRegistry()


@lru_cache
def get_checkout_service() -> CheckoutService:
    product_repo = ProductRepository()
    return CheckoutService(
        reconciler=PriceReconciler(product_repo),
        coupon_service=CouponService(CouponRepository(), product_repo),
        delivery_service=DeliveryFeeService(VendorRepository(), DeliveryFeeRepository()),
    )


async def get_checkout_session(
    user_id: str = Depends(require_customer),
    registry: SessionRegistry = Depends(get_registry),
) -> CheckoutSession:
    """
    FastAPI dependency resolving the caller's CheckoutSession.

    Sessions are only touched on the event loop: this dependency and
    every route using it are `async def`.

    Usage:

        @router.get("/example")
        async def example(session: CheckoutSession = Depends(get_checkout_session)):
            ...
    """
    return registry.get(user_id)
