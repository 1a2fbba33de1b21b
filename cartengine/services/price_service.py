# cartengine/services/price_service.py
import logging
from collections.abc import Awaitable, Callable

from fastapi import HTTPException, status

from cartengine.repositories.product_repo import ProductRepository
from cartengine.services.cart_service import CartLedger

logger = logging.getLogger(__name__)


class PriceReconciler:
    """
    Keeps cart line prices in line with the catalog.

    Responsibilities:
      - one batched price lookup for every product id in the cart
      - rewrite price / discount_price on the lines (quantities untouched)
      - on failure keep the last known prices; the call is safe to retry
      - the cart reports `is_syncing` while its lookup is in flight
    """

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    async def _fetch_and_apply(self, cart: CartLedger) -> None:
        ids = cart.product_ids
        if not ids:
            return

        cart.syncs_in_flight += 1
        try:
            quotes = await self.product_repo.fetch_prices(ids)
        finally:
            cart.syncs_in_flight -= 1

        returned = {q.id for q in quotes}
        missing = [pid for pid in ids if pid not in returned]
        if missing:
            logger.warning("No catalog price for %s; keeping cached prices", missing)

        changed = cart.apply_prices(quotes)
        if changed:
            logger.info("Cart prices refreshed for %d product(s)", len(changed))

    async def sync(self, cart: CartLedger) -> bool:
        """
        Background sync (app start / foreground). Never raises.

        Returns:
            True if prices were refreshed (or the cart is empty).
        """
        try:
            await self._fetch_and_apply(cart)
        except Exception as e:
            logger.warning("Price sync failed, keeping last known prices: %s", e)
            return False
        return True

    async def sync_for_checkout(self, cart: CartLedger) -> None:
        """
        Checkout-time sync. Must succeed before totals are shown.

        Raises:
            HTTPException(503): retryable; the cart is left untouched.
        """
        if not await self.sync(cart):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not refresh cart prices. Please try again.",
            )


class AppStateMonitor:
    """
    Fires a price sync on cold start and whenever the app comes back to
    the foreground (background/inactive -> active).
    """

    def __init__(self, on_sync: Callable[[], Awaitable[bool]]):
        self._on_sync = on_sync
        self.state = "active"

    async def on_launch(self) -> bool:
        self.state = "active"
        return await self._on_sync()

    async def on_state_change(self, next_state: str) -> bool | None:
        """
        Returns the sync result if a sync ran, else None.
        """
        previous = self.state
        self.state = next_state
        if previous in ("inactive", "background") and next_state == "active":
            return await self._on_sync()
        return None
