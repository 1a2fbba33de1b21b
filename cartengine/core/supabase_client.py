# cartengine/core/supabase_client.py
from supabase import AsyncClient, acreate_client

from cartengine.core.config import get_settings

_public_client: AsyncClient | None = None


async def supabase_public() -> AsyncClient:
    """
    Return the process-wide async Supabase client built with the anon key.

    Use cases:
      - batched product price lookups
      - vendor coordinates
      - the `calculate_delivery_fee` RPC
      - coupon and category reads

    Note: This client still respects RLS.

    Raises:
        RuntimeError: if SUPABASE_URL / SUPABASE_KEY are not set.
    """
    global _public_client
    if _public_client is None:
        settings = get_settings()
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise RuntimeError("Missing SUPABASE_URL / SUPABASE_KEY in .env")
        _public_client = await acreate_client(
            settings.SUPABASE_URL, settings.SUPABASE_KEY
        )
    return _public_client
