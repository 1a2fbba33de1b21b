# cartengine/core/state_store.py
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CART_STORE = "cart-store"
DISCOUNT_STORE = "discount-store"
WISHLIST_STORE = "wishlist-store"


class LocalStateStore:
    """
    JSON persistence for named session stores.

    Layout on disk:
        <base_dir>/<namespace>/<store name>.json

    Example:
        .cartengine-state/<user id>/cart-store.json

    Reads never raise for missing or corrupt files; callers get None and
    fall back to an empty state.
    """

    def __init__(self, base_dir: str | Path, namespace: str):
        self.root = Path(base_dir) / namespace

    def _path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def read(self, name: str) -> Any | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s (%s); starting empty", path, e)
            return None

    def write(self, name: str, payload: Any) -> None:
        """
        Atomic write: a uniquely named temp file in the same directory,
        then replace. Concurrent writers never share a temp file.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.root,
            prefix=f".{name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            json.dump(payload, fh)
            tmp = fh.name
        try:
            os.replace(tmp, path)
        except OSError:
            os.unlink(tmp)
            raise
