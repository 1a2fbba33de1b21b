# cartengine/services/cart_service.py
import logging
from typing import Any, Iterable

from pydantic import ValidationError

from cartengine.models.cart import CartLine
from cartengine.models.product import PriceQuote, Product
from cartengine.schemas.cart import CartItemRead, CartSummary

logger = logging.getLogger(__name__)

CART_SCHEMA_VERSION = 2


class CartLedger:
    """
    Quantity map of one customer's session cart.

    Responsibilities:
      - keep at most one line per product id, never with quantity < 1
      - derive total_items / total_price from the lines on every change
        (never adjusted incrementally)
      - serialize to an ordered list of (product_id, line) pairs and
        migrate older persisted shapes on load
    """

    def __init__(self, lines: Iterable[CartLine] = ()):
        self._lines: dict[str, CartLine] = {}
        for line in lines:
            self._lines[line.product_id] = line
        self.total_items = 0
        self.total_price = 0.0
        # price syncs currently running against this cart
        self.syncs_in_flight = 0
        self._recalculate()

    # ---- internal helpers ----

    def _recalculate(self) -> None:
        self.total_items = sum(line.quantity for line in self._lines.values())
        self.total_price = sum(line.line_total for line in self._lines.values())

    # ---- read access ----

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def product_ids(self) -> list[str]:
        return list(self._lines.keys())

    def get(self, product_id: str) -> CartLine | None:
        return self._lines.get(product_id)

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._lines

    @property
    def is_syncing(self) -> bool:
        return self.syncs_in_flight > 0

    def quantities(self) -> dict[str, int]:
        return {pid: line.quantity for pid, line in self._lines.items()}

    def summary(self) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with line_total)
          - total_items
          - total_price
        """
        items = [
            CartItemRead(
                product_id=line.product_id,
                product=line.product,
                quantity=line.quantity,
                effective_price=line.product.effective_price,
                line_total=line.line_total,
            )
            for line in self._lines.values()
        ]
        return CartSummary(
            items=items,
            total_items=self.total_items,
            total_price=self.total_price,
            is_syncing=self.is_syncing,
        )

    # ---- public operations ----

    def add_to_cart(self, product: Product) -> None:
        """
        Add one unit of `product`.

        An existing line keeps its quantity + 1 and takes the newer
        snapshot; otherwise a line with quantity 1 is created.
        """
        existing = self._lines.get(product.id)
        if existing:
            self._lines[product.id] = CartLine(
                product=product, quantity=existing.quantity + 1
            )
        else:
            self._lines[product.id] = CartLine(product=product, quantity=1)
        self._recalculate()

    def update_quantity(self, product_id: str, delta: int) -> None:
        """
        Apply `delta` to a line. A result <= 0 deletes the line.
        Unknown product ids are ignored.
        """
        item = self._lines.get(product_id)
        if item is None:
            return

        next_qty = item.quantity + delta
        if next_qty <= 0:
            del self._lines[product_id]
        else:
            self._lines[product_id] = CartLine(product=item.product, quantity=next_qty)
        self._recalculate()

    def remove_item(self, product_id: str) -> None:
        if self._lines.pop(product_id, None) is not None:
            self._recalculate()

    def clear_cart(self) -> None:
        self._lines = {}
        self._recalculate()

    def apply_prices(self, quotes: Iterable[PriceQuote]) -> list[str]:
        """
        Overwrite price / discount_price on matching lines; quantities
        are untouched. Returns the ids whose effective price changed.
        """
        changed: list[str] = []
        for quote in quotes:
            line = self._lines.get(quote.id)
            if line is None:
                continue
            before = line.product.effective_price
            line.product = line.product.model_copy(
                update={"price": quote.price, "discount_price": quote.discount_price}
            )
            if line.product.effective_price != before:
                changed.append(quote.id)
        self._recalculate()
        return changed

    # ---- persistence ----

    def to_payload(self) -> dict[str, Any]:
        return {
            "version": CART_SCHEMA_VERSION,
            "cart": [
                [pid, {"product": line.product.model_dump(mode="json"), "quantity": line.quantity}]
                for pid, line in self._lines.items()
            ],
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "CartLedger":
        """
        Rebuild a ledger from persisted state.

        Older shapes are migrated step by step up to CART_SCHEMA_VERSION.
        A shape that cannot be recognized at all yields an empty cart;
        individual lines that fail validation are dropped.
        """
        entries = migrate_cart_payload(payload)
        if entries is None:
            if payload is not None:
                logger.warning("Unrecognized persisted cart shape; starting with an empty cart")
            return cls()

        lines: list[CartLine] = []
        for pid, raw in entries:
            try:
                line = CartLine.model_validate(raw)
            except ValidationError as e:
                logger.warning("Dropping persisted cart line %s: %s", pid, e.errors()[:1])
                continue
            if line.product_id != pid:
                logger.warning("Dropping persisted cart line %s: key/product id mismatch", pid)
                continue
            lines.append(line)
        return cls(lines)


# ---------------------------------------------------------------------------
# Persisted shape migrations
#
# v0: {"cart": {product_id: line}}                        (object map)
# v1: {"cart": [[product_id, {productId, product, quantity}]]}  (pairs, camelCase;
#     some lines had the product fields flattened onto the line itself)
# v2: {"version": 2, "cart": [[product_id, {product, quantity}]]}
#
# The mobile client wrapped any of these in its persist envelope,
# {"state": {...}, "version": n}, where n is the envelope's own counter.
# ---------------------------------------------------------------------------


def _unwrap_envelope(payload: dict[str, Any]) -> dict[str, Any]:
    state = payload.get("state")
    if "cart" not in payload and isinstance(state, dict):
        return state
    return payload


def _detect_version(payload: dict[str, Any]) -> int | None:
    """
    Version of a (non-enveloped) payload, judged by the shape of `cart`.

    A declared version is only trusted where it agrees with that shape;
    one newer than CART_SCHEMA_VERSION is returned as-is and rejected.
    """
    declared = payload.get("version")
    if isinstance(declared, int) and declared > CART_SCHEMA_VERSION:
        return declared
    cart = payload.get("cart")
    if isinstance(cart, dict):
        return 0
    if isinstance(cart, list):
        return CART_SCHEMA_VERSION if declared == CART_SCHEMA_VERSION else 1
    return None


def _migrate_v0_to_v1(payload: dict[str, Any]) -> dict[str, Any]:
    return {"version": 1, "cart": [[pid, line] for pid, line in payload["cart"].items()]}


def _migrate_line_v1(pid: str, line: dict[str, Any]) -> dict[str, Any]:
    quantity = line.get("quantity")
    product = line.get("product")
    if not isinstance(product, dict):
        # flattened: product fields live on the line itself
        product = {k: v for k, v in line.items() if k not in ("quantity", "productId", "product")}
        product.setdefault("id", line.get("productId", pid))
    else:
        product = dict(product)
        product.setdefault("id", line.get("productId", pid))
    return {"product": product, "quantity": quantity}


def _migrate_v1_to_v2(payload: dict[str, Any]) -> dict[str, Any]:
    entries = []
    for entry in payload["cart"]:
        if not (isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[1], dict)):
            logger.warning("Dropping malformed persisted cart entry: %r", entry)
            continue
        pid, line = str(entry[0]), entry[1]
        entries.append([pid, _migrate_line_v1(pid, line)])
    return {"version": 2, "cart": entries}


MIGRATIONS = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate_cart_payload(payload: Any) -> list[tuple[str, Any]] | None:
    """
    Bring a persisted cart payload up to the current schema.

    Returns the (product_id, raw line) pairs, or None when the payload
    is not a recognizable cart.
    """
    if not isinstance(payload, dict):
        return None

    payload = _unwrap_envelope(payload)
    version = _detect_version(payload)
    if version is None or version > CART_SCHEMA_VERSION:
        return None

    try:
        while version < CART_SCHEMA_VERSION:
            payload = MIGRATIONS[version](payload)
            version = payload["version"]
    except (KeyError, TypeError, AttributeError) as e:
        logger.warning("Cart migration from v%s failed: %s", version, e)
        return None

    cart = payload.get("cart")
    if not isinstance(cart, list):
        return None

    entries: list[tuple[str, Any]] = []
    for entry in cart:
        if isinstance(entry, (list, tuple)) and len(entry) == 2:
            entries.append((str(entry[0]), entry[1]))
    return entries
