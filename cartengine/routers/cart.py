# cartengine/routers/cart.py
from fastapi import APIRouter, Depends

from cartengine.routers.deps import get_checkout_session
from cartengine.schemas.cart import CartItemAdd, CartItemDelta, CartSummary
from cartengine.services.session_service import CheckoutSession

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartSummary)
async def get_my_cart(session: CheckoutSession = Depends(get_checkout_session)):
    """
    Get current customer's cart summary.
    """
    return session.cart.summary()


@router.post("", response_model=CartSummary)
async def add_to_cart(
    payload: CartItemAdd,
    session: CheckoutSession = Depends(get_checkout_session),
):
    """
    Add one unit of a product to the cart.

    Returns the updated cart summary.
    """
    session.add_to_cart(payload.product)
    return session.cart.summary()


@router.patch("/{product_id}", response_model=CartSummary)
async def update_cart_item(
    product_id: str,
    payload: CartItemDelta,
    session: CheckoutSession = Depends(get_checkout_session),
):
    """
    Change a line's quantity by `delta`; reaching 0 removes the line.
    Unknown products are ignored.
    """
    session.update_quantity(product_id, payload.delta)
    return session.cart.summary()


@router.delete("/{product_id}", response_model=CartSummary)
async def remove_cart_item(
    product_id: str,
    session: CheckoutSession = Depends(get_checkout_session),
):
    """
    Remove a product from the cart.
    """
    session.remove_item(product_id)
    return session.cart.summary()


@router.delete("", response_model=CartSummary)
async def clear_cart(session: CheckoutSession = Depends(get_checkout_session)):
    """
    Clear the entire cart.
    """
    session.clear_cart()
    return session.cart.summary()
