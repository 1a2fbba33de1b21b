# cartengine/services/wishlist_service.py
from typing import Any


class WishlistSet:
    """
    Insertion-ordered set of wishlisted product ids.
    """

    def __init__(self, product_ids: list[str] | None = None):
        # dict keeps insertion order and gives set semantics
        self._ids: dict[str, None] = dict.fromkeys(product_ids or [])

    @property
    def items(self) -> list[str]:
        return list(self._ids)

    def contains(self, product_id: str) -> bool:
        return product_id in self._ids

    def add(self, product_id: str) -> None:
        self._ids[product_id] = None

    def remove(self, product_id: str) -> None:
        self._ids.pop(product_id, None)

    def toggle(self, product_id: str) -> bool:
        """Flip membership; returns True if the product is now wishlisted."""
        if product_id in self._ids:
            del self._ids[product_id]
            return False
        self._ids[product_id] = None
        return True

    def clear(self) -> None:
        self._ids = {}

    def to_payload(self) -> dict[str, Any]:
        return {"wishlist": self.items}

    @classmethod
    def from_payload(cls, payload: Any) -> "WishlistSet":
        if not isinstance(payload, dict):
            return cls()
        raw = payload.get("wishlist")
        if not isinstance(raw, list):
            return cls()
        return cls([str(pid) for pid in raw if pid is not None])
