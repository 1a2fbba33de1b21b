# cartengine/routers/wishlist.py
from fastapi import APIRouter, Depends

from cartengine.routers.deps import get_checkout_session
from cartengine.schemas.session import WishlistRead, WishlistToggle
from cartengine.services.session_service import CheckoutSession

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


@router.get("", response_model=WishlistRead)
async def get_wishlist(session: CheckoutSession = Depends(get_checkout_session)):
    return WishlistRead(items=session.wishlist.items)


@router.post("", response_model=WishlistRead)
async def toggle_wishlist(
    payload: WishlistToggle,
    session: CheckoutSession = Depends(get_checkout_session),
):
    """
    Add the product if absent, remove it otherwise.
    """
    session.toggle_wishlist(payload.product_id)
    return WishlistRead(items=session.wishlist.items)


@router.delete("", response_model=WishlistRead)
async def clear_wishlist(session: CheckoutSession = Depends(get_checkout_session)):
    session.clear_wishlist()
    return WishlistRead(items=[])
