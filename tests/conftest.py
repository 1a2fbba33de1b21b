import asyncio

import pytest

from cartengine.core.config import Settings
from cartengine.core.state_store import LocalStateStore
from cartengine.models.coupon import Coupon
from cartengine.models.product import Category, PriceQuote, Product
from cartengine.schemas.delivery import VendorLocation


class FakeProductRepository:
    """In-memory stand-in for the catalog."""

    def __init__(self, prices=None, categories=None, fail=False):
        # product id -> (price, discount_price)
        self.prices = dict(prices or {})
        self.categories = list(categories or [])
        self.fail = fail
        self.price_calls = []

    async def fetch_prices(self, product_ids):
        self.price_calls.append(list(product_ids))
        if self.fail:
            raise ConnectionError("catalog unavailable")
        return [
            PriceQuote(id=pid, price=price, discount_price=discount)
            for pid, (price, discount) in self.prices.items()
            if pid in product_ids
        ]

    async def fetch_categories(self, category_ids):
        if self.fail:
            raise ConnectionError("catalog unavailable")
        return [c for c in self.categories if c.id in category_ids]


class FakeVendorRepository:
    def __init__(self, locations=None, delays=None):
        self.locations = dict(locations or {})
        self.delays = dict(delays or {})
        self.calls = []

    async def get_location(self, vendor_id):
        self.calls.append(vendor_id)
        if vendor_id in self.delays:
            await asyncio.sleep(self.delays[vendor_id])
        if vendor_id not in self.locations:
            raise LookupError(f"Vendor {vendor_id} not found")
        lat, lng = self.locations[vendor_id]
        return VendorLocation(latitude=lat, longitude=lng)


class FakeDeliveryFeeRepository:
    """25 up to 5 km, 40 beyond; `fail` makes every call raise."""

    def __init__(self, fail=False):
        self.fail = fail
        self.distances = []

    async def fee_for_distance(self, distance_km):
        self.distances.append(distance_km)
        if self.fail:
            raise RuntimeError("rpc error")
        return 25.0 if distance_km <= 5 else 40.0


class FakeCouponRepository:
    def __init__(self, coupons=None):
        self.coupons = list(coupons or [])

    async def list_active(self):
        return list(self.coupons)

    async def get_active_by_code(self, code):
        for coupon in self.coupons:
            if coupon.code == code.strip().upper():
                return coupon
        return None


# One degree of latitude is ~111.195 km with a 6371 km earth radius.
KM_PER_DEGREE = 111.19492664455873


def point_north_of(lat, lng, km):
    return (lat + km / KM_PER_DEGREE, lng)


@pytest.fixture
def make_product():
    def _make(
        product_id,
        price,
        vendor_id="vendor-a",
        discount_price=None,
        category_id=None,
        is_veg=None,
        name=None,
    ):
        return Product(
            id=product_id,
            vendor_id=vendor_id,
            category_id=category_id,
            name=name or f"Product {product_id}",
            unit="1 pc",
            price=price,
            discount_price=discount_price,
            is_veg=is_veg,
        )

    return _make


@pytest.fixture
def make_coupon():
    def _make(code="SAVE", **kwargs):
        data = {"id": f"coupon-{code.lower()}", "code": code, "discount_type": "flat"}
        data.update(kwargs)
        return Coupon.model_validate(data)

    return _make


@pytest.fixture
def settings(tmp_path):
    return Settings(
        STATE_DIR=str(tmp_path / "state"),
        FREE_DELIVERY_MINIMUM=499,
        FALLBACK_DELIVERY_FEE=30,
        FALLBACK_DISTANCE_KM=5,
        SUPABASE_JWT_SECRET="test-secret",
    )


@pytest.fixture
def state_store(settings):
    return LocalStateStore(settings.STATE_DIR, "user-1")


@pytest.fixture
def vegetables():
    return Category(id="cat-veg", name="Vegetables", slug="vegetables")


@pytest.fixture
def poultry():
    return Category(id="cat-meat", name="Chicken & Meat", slug="chicken-meat")

