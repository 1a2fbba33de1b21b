# cartengine/routers/checkout.py
from fastapi import APIRouter, Depends, Query

from cartengine.core.geo import get_serviceable_region
from cartengine.routers.deps import get_checkout_service, get_checkout_session
from cartengine.schemas.delivery import DeliveryFeeSummary, ServiceabilityRead
from cartengine.schemas.order import CheckoutRequest, OrderGroupDraft
from cartengine.schemas.session import AppStateUpdate, PriceSyncRead
from cartengine.services.checkout_service import CheckoutService
from cartengine.services.session_service import CheckoutSession

router = APIRouter(tags=["Checkout"])


@router.post("/checkout/preview", response_model=OrderGroupDraft)
async def checkout_preview(
    payload: CheckoutRequest,
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Build the final checkout breakdown for the selected address.

    Prices are refreshed first; if that fails the response is 503 and
    the client should retry.
    """
    return await service.prepare(session, payload.address)


@router.post("/checkout/delivery-fees", response_model=DeliveryFeeSummary)
async def delivery_fees(
    payload: CheckoutRequest,
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Per-vendor delivery fees for the current cart (no price refresh).
    """
    return await service.delivery_fees(session, payload.address)


@router.post("/checkout/complete", status_code=204)
async def checkout_complete(
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Called once the order-creation collaborator has accepted the order.
    Clears the cart and the applied coupon.
    """
    service.complete(session)


@router.post("/session/app-state", response_model=PriceSyncRead)
async def app_state(
    payload: AppStateUpdate,
    session: CheckoutSession = Depends(get_checkout_session),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Client lifecycle signal; refreshes cart prices on launch and on
    return to the foreground.
    """
    monitor = service.monitor_for(session)
    if payload.launch:
        synced = await monitor.on_launch()
    else:
        synced = await monitor.on_state_change(payload.state)
    return PriceSyncRead(synced=bool(synced))


@router.get("/delivery/serviceability", response_model=ServiceabilityRead)
def serviceability(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
):
    region = get_serviceable_region(lat, lng)
    return ServiceabilityRead(
        is_serviceable=region is not None,
        region=region.name if region else None,
    )
