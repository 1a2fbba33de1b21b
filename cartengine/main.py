# cartengine/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from cartengine.core.config import get_settings

# Routers
from cartengine.routers.cart import router as cart_router
from cartengine.routers.wishlist import router as wishlist_router
from cartengine.routers.coupons import router as coupons_router
from cartengine.routers.checkout import router as checkout_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Log the pricing configuration in effect.

    Shutdown:
      - Nothing to clean up; session state is written on every change.
    """
    logger.info(
        "Startup: free delivery from %.2f, fallback fee %.2f, state dir %s",
        settings.FREE_DELIVERY_MINIMUM,
        settings.FALLBACK_DELIVERY_FEE,
        settings.STATE_DIR,
    )
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
origins = [
    "http://localhost:8081",  # Expo dev server
    "http://127.0.0.1:8081",
    "http://localhost:19006",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(wishlist_router, prefix=settings.API_V1_STR)
app.include_router(coupons_router, prefix=settings.API_V1_STR)
app.include_router(checkout_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "cartengine"}
