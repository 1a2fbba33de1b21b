# cartengine/models/cart.py
from sqlmodel import SQLModel, Field

from cartengine.models.product import Product


class CartLine(SQLModel):
    """
    One cart entry: a product snapshot plus its quantity.

    Lines are keyed by product id inside the ledger; a line never
    exists with quantity < 1.
    """

    product: Product
    quantity: int = Field(ge=1, description="Must be >= 1")

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total(self) -> float:
        return self.product.effective_price * self.quantity
