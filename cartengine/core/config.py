# cartengine/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env) for talking to the backend:
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Pricing knobs (optional):
      - FREE_DELIVERY_MINIMUM: subtotal at which delivery becomes free
      - FALLBACK_DELIVERY_FEE / FALLBACK_DISTANCE_KM: used for a vendor
        whose location or fee lookup failed
    """

    PROJECT_NAME: str = "Grocery Cart Engine"
    API_V1_STR: str = "/api/v1"

    # Supabase config
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # JWT verification
    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_JWT_ALG: str = "HS256"

    # On-device style state (cart-store, discount-store, wishlist-store)
    STATE_DIR: str = ".cartengine-state"
    # Sessions kept in memory; the least recently used are reloaded from STATE_DIR
    SESSION_CACHE_SIZE: int = 1024

    # Delivery pricing
    FREE_DELIVERY_MINIMUM: float = 499.0
    FALLBACK_DELIVERY_FEE: float = 30.0
    FALLBACK_DISTANCE_KM: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
