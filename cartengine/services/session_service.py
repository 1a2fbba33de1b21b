# cartengine/services/session_service.py
import logging
from collections import OrderedDict

from cartengine.core.config import Settings, get_settings
from cartengine.core.state_store import (
    CART_STORE,
    DISCOUNT_STORE,
    WISHLIST_STORE,
    LocalStateStore,
)
from cartengine.models.coupon import Coupon
from cartengine.models.product import Product
from cartengine.schemas.coupon import ActiveDiscount
from cartengine.services.cart_service import CartLedger
from cartengine.services.discount_service import DiscountStore
from cartengine.services.price_service import AppStateMonitor
from cartengine.services.wishlist_service import WishlistSet

logger = logging.getLogger(__name__)


class CheckoutSession:
    """
    Per-customer state: cart, applied discount and wishlist.

    Every mutation goes through this object so that:
      - the discount is recomputed after each cart change
      - the named stores are written back after each change
    """

    def __init__(self, user_id: str, store: LocalStateStore):
        self.user_id = user_id
        self.store = store
        self.cart = CartLedger.from_payload(store.read(CART_STORE))
        self.discount = DiscountStore.from_payload(store.read(DISCOUNT_STORE))
        self.wishlist = WishlistSet.from_payload(store.read(WISHLIST_STORE))
        # foreground tracking, created on the first app-state signal
        self.monitor: AppStateMonitor | None = None
        # the persisted amount is never trusted
        self.discount.recalculate(self.cart.total_price, self.cart.lines)

    # ---- persistence ----

    def save_cart(self) -> None:
        self.store.write(CART_STORE, self.cart.to_payload())

    def save_discount(self) -> None:
        self.store.write(DISCOUNT_STORE, self.discount.to_payload())

    def save_wishlist(self) -> None:
        self.store.write(WISHLIST_STORE, self.wishlist.to_payload())

    def cart_changed(self) -> None:
        """Recompute the discount for the new subtotal and persist both."""
        self.discount.recalculate(self.cart.total_price, self.cart.lines)
        self.save_cart()
        self.save_discount()

    # ---- cart ----

    def add_to_cart(self, product: Product) -> None:
        self.cart.add_to_cart(product)
        self.cart_changed()

    def update_quantity(self, product_id: str, delta: int) -> None:
        self.cart.update_quantity(product_id, delta)
        self.cart_changed()

    def remove_item(self, product_id: str) -> None:
        self.cart.remove_item(product_id)
        self.cart_changed()

    def clear_cart(self) -> None:
        self.cart.clear_cart()
        self.cart_changed()

    # ---- discount ----

    def apply_coupon(self, coupon: Coupon) -> ActiveDiscount:
        discount = self.discount.apply(coupon, self.cart.total_price, self.cart.lines)
        self.save_discount()
        return discount

    def remove_coupon(self) -> None:
        self.discount.remove()
        self.save_discount()

    # ---- wishlist ----

    def toggle_wishlist(self, product_id: str) -> bool:
        added = self.wishlist.toggle(product_id)
        self.save_wishlist()
        return added

    def clear_wishlist(self) -> None:
        self.wishlist.clear()
        self.save_wishlist()

    # ---- lifecycle ----

    def order_placed(self) -> None:
        """After a successful order: empty cart, drop the discount."""
        self.cart.clear_cart()
        self.discount.remove()
        self.save_cart()
        self.save_discount()
        logger.info("Order placed for %s; cart and discount cleared", self.user_id)


class SessionRegistry:
    """
    One CheckoutSession per user id, created lazily from disk.

    At most `SESSION_CACHE_SIZE` sessions are held; the least recently
    used one is dropped first. Its state is already on disk, so the
    next request for that user simply reloads it.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.max_size = self.settings.SESSION_CACHE_SIZE
        self._sessions: OrderedDict[str, CheckoutSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: str) -> CheckoutSession:
        session = self._sessions.get(user_id)
        if session is not None:
            self._sessions.move_to_end(user_id)
            return session

        store = LocalStateStore(self.settings.STATE_DIR, user_id)
        session = CheckoutSession(user_id, store)
        self._sessions[user_id] = session
        while len(self._sessions) > self.max_size:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted session for %s", evicted)
        return session
