# cartengine/repositories/vendor_repo.py
from collections.abc import Awaitable, Callable

from supabase import AsyncClient

from cartengine.core.supabase_client import supabase_public
from cartengine.schemas.delivery import VendorLocation


class VendorRepository:
    def __init__(self, client_factory: Callable[[], Awaitable[AsyncClient]] = supabase_public):
        self._client = client_factory

    async def get_location(self, vendor_id: str) -> VendorLocation:
        """
        Vendor coordinates; vendors are keyed by their auth user id.

        Raises:
            LookupError: if the vendor row is missing.
        """
        client = await self._client()
        resp = await (
            client.table("vendors")
            .select("latitude, longitude")
            .eq("user_id", vendor_id)
            .limit(1)
            .execute()
        )
        rows = resp.data or []
        if not rows:
            raise LookupError(f"Vendor {vendor_id} not found")
        return VendorLocation.model_validate(rows[0])


class DeliveryFeeRepository:
    """
    Wrapper around the server-side `calculate_delivery_fee` RPC.
    The pricing tiers are opaque to this service.
    """

    def __init__(self, client_factory: Callable[[], Awaitable[AsyncClient]] = supabase_public):
        self._client = client_factory

    async def fee_for_distance(self, distance_km: float) -> float:
        client = await self._client()
        resp = await client.rpc(
            "calculate_delivery_fee", {"p_distance_km": distance_km}
        ).execute()
        if resp.data is None:
            raise ValueError("calculate_delivery_fee returned no value")
        return float(resp.data)
