# cartengine/routers/coupons.py
from fastapi import APIRouter, Depends

from cartengine.routers.deps import get_checkout_service, get_checkout_session
from cartengine.schemas.coupon import ActiveDiscount, CouponApply, CouponFilterResult
from cartengine.services.checkout_service import CheckoutService
from cartengine.services.session_service import CheckoutSession

router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.get("", response_model=CouponFilterResult)
async def list_coupons(
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Active coupons ranked against the current cart.

    Eligible coupons come first (largest saving first), then ineligible
    ones closest to qualifying, each with suggestions.
    """
    return await service.evaluate_coupons(session)


@router.get("/active", response_model=ActiveDiscount | None)
async def get_active_coupon(session: CheckoutSession = Depends(get_checkout_session)):
    return session.discount.active


@router.post("/apply", response_model=ActiveDiscount)
async def apply_coupon(
    payload: CouponApply,
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Apply a coupon by code.

    Errors:
      - 404 unknown or expired code
      - 400 coupon not eligible for this cart (reason in detail)
    """
    return await service.apply_coupon(session, payload.code)


@router.delete("/active", status_code=204)
async def remove_coupon(session: CheckoutSession = Depends(get_checkout_session)):
    session.remove_coupon()
