# cartengine/schemas/session.py
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

AppState = Literal["active", "background", "inactive"]


class AppStateUpdate(SQLModel):
    """
    Client lifecycle signal. `launch=True` marks a cold start.
    """

    model_config = ConfigDict(extra="forbid")

    state: AppState
    launch: bool = False


class PriceSyncRead(SQLModel):
    """
    Outcome of a lifecycle-triggered price sync. A sync still in flight
    shows up as `is_syncing` on the cart summary.
    """

    synced: bool


class WishlistToggle(SQLModel):
    product_id: str


class WishlistRead(SQLModel):
    items: list[str]
