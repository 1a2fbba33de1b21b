# cartengine/schemas/cart.py
from sqlmodel import SQLModel, Field

from cartengine.models.product import Product


class CartItemAdd(SQLModel):
    """
    Payload for adding one unit of a product to the cart.

    The client sends the catalog snapshot it is displaying; prices are
    corrected later by the price sync.
    """

    product: Product


class CartItemDelta(SQLModel):
    """
    Payload for changing the quantity of a cart line by `delta`.
    A resulting quantity <= 0 removes the line.
    """

    delta: int = Field(description="Positive to add, negative to remove")


class CartItemRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    product_id: str
    product: Product
    quantity: int
    effective_price: float
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart view with derived totals.
    """

    items: list[CartItemRead]
    total_items: int
    total_price: float
    is_syncing: bool = False
