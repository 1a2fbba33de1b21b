# cartengine/repositories/product_repo.py
from collections.abc import Awaitable, Callable

from supabase import AsyncClient

from cartengine.core.supabase_client import supabase_public
from cartengine.models.product import Category, PriceQuote


class ProductRepository:
    """
    Catalog reads against the backend `products` / `categories` tables.

    - Pure data access, one round trip per call.
    - No FastAPI, no business logic; errors propagate to the service.
    """

    def __init__(self, client_factory: Callable[[], Awaitable[AsyncClient]] = supabase_public):
        self._client = client_factory

    async def fetch_prices(self, product_ids: list[str]) -> list[PriceQuote]:
        """Batched lookup of current price / discount_price."""
        if not product_ids:
            return []
        client = await self._client()
        resp = await (
            client.table("products")
            .select("id, price, discount_price")
            .in_("id", product_ids)
            .execute()
        )
        return [PriceQuote.model_validate(row) for row in resp.data or []]

    async def fetch_categories(self, category_ids: list[str]) -> list[Category]:
        if not category_ids:
            return []
        client = await self._client()
        resp = await (
            client.table("categories")
            .select("id, name, slug")
            .in_("id", category_ids)
            .execute()
        )
        return [Category.model_validate(row) for row in resp.data or []]
