# cartengine/repositories/coupon_repo.py
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from supabase import AsyncClient

from cartengine.core.supabase_client import supabase_public
from cartengine.models.coupon import Coupon


class CouponRepository:
    """
    Reads of currently valid coupons (active and inside their date window).
    """

    def __init__(self, client_factory: Callable[[], Awaitable[AsyncClient]] = supabase_public):
        self._client = client_factory

    def _active_query(self, client: AsyncClient):
        now = datetime.now(timezone.utc).isoformat()
        return (
            client.table("coupons")
            .select("*")
            .eq("is_active", True)
            .lte("start_date", now)
            .gte("end_date", now)
        )

    async def list_active(self) -> list[Coupon]:
        client = await self._client()
        resp = await self._active_query(client).execute()
        return [Coupon.model_validate(row) for row in resp.data or []]

    async def get_active_by_code(self, code: str) -> Coupon | None:
        client = await self._client()
        resp = await self._active_query(client).eq("code", code.strip().upper()).limit(1).execute()
        rows = resp.data or []
        return Coupon.model_validate(rows[0]) if rows else None
