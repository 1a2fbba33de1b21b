"""
Unit tests for per-vendor delivery fees.
"""

import asyncio
import time

import pytest

from cartengine.core.geo import get_serviceable_region, haversine_km
from cartengine.models.cart import CartLine
from cartengine.schemas.delivery import DeliveryAddress
from cartengine.services.delivery_service import (
    DeliveryFeeService,
    DeliveryFeeTracker,
    group_lines_by_vendor,
)

from conftest import FakeDeliveryFeeRepository, FakeVendorRepository, point_north_of

HOME = (26.0, 91.0)


@pytest.fixture
def address():
    return DeliveryAddress(id="addr-1", latitude=HOME[0], longitude=HOME[1])


@pytest.fixture
def two_vendor_lines(make_product):
    return [
        CartLine(product=make_product("a", 100, vendor_id="vendor-a"), quantity=1),
        CartLine(product=make_product("b", 50, vendor_id="vendor-b"), quantity=2),
        CartLine(product=make_product("c", 20, vendor_id="vendor-a"), quantity=1),
    ]


@pytest.fixture
def vendors():
    return FakeVendorRepository(
        locations={
            "vendor-a": point_north_of(*HOME, km=3.0),
            "vendor-b": point_north_of(*HOME, km=8.0),
        }
    )


def run(coro):
    return asyncio.run(coro)


class TestHaversine:
    def test_zero_distance(self):
        assert haversine_km(26.0, 91.0, 26.0, 91.0) == 0

    def test_north_offset(self):
        lat, lng = point_north_of(*HOME, km=8.0)

        assert haversine_km(HOME[0], HOME[1], lat, lng) == pytest.approx(8.0)

    def test_known_city_pair(self):
        # Dibrugarh -> Guwahati
        assert haversine_km(27.4728, 94.9120, 26.1445, 91.7362) == pytest.approx(348, abs=5)

    def test_serviceable_region(self):
        assert get_serviceable_region(27.48, 94.91).name == "Dibrugarh"
        assert get_serviceable_region(28.7, 77.1) is None


class TestGrouping:
    def test_partition_by_vendor(self, two_vendor_lines, make_product):
        lines = two_vendor_lines + [CartLine(product=make_product("x", 5, vendor_id=None), quantity=1)]
        groups = group_lines_by_vendor(lines)

        assert list(groups) == ["vendor-a", "vendor-b", None]
        assert [l.product_id for l in groups["vendor-a"]] == ["a", "c"]


class TestDeliveryFeeService:
    def test_two_vendors_no_free_delivery(self, settings, vendors, address, two_vendor_lines):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        summary = run(service.calculate(two_vendor_lines, address, subtotal=220))

        assert [(v.vendor_id, v.distance_km, v.delivery_fee) for v in summary.vendors] == [
            ("vendor-a", 3.0, 25),
            ("vendor-b", 8.0, 40),
        ]
        assert summary.total_delivery_fee == 65
        assert summary.original_delivery_fee == 65
        assert summary.vendor_count == 2
        assert summary.is_free_delivery is False
        assert summary.free_delivery_reason is None
        assert summary.amount_to_free_delivery == 279
        assert summary.error is None

    def test_free_by_minimum_order(self, settings, vendors, address, two_vendor_lines):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        summary = run(service.calculate(two_vendor_lines, address, subtotal=499))

        assert summary.total_delivery_fee == 0
        assert summary.original_delivery_fee == 65
        assert [v.original_fee for v in summary.vendors] == [25, 40]
        assert summary.free_delivery_reason == "minimum_order"
        assert summary.qualifies_by_minimum is True
        assert summary.qualifies_by_coupon is False
        assert summary.amount_to_free_delivery == 0

    def test_free_by_coupon_and_minimum(self, settings, vendors, address, two_vendor_lines):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        summary = run(service.calculate(two_vendor_lines, address, has_free_delivery=True, subtotal=600))

        assert summary.total_delivery_fee == 0
        assert summary.free_delivery_reason == "coupon"
        assert summary.qualifies_by_coupon is True
        assert summary.qualifies_by_minimum is True

    def test_custom_minimum(self, settings, vendors, address, two_vendor_lines):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        summary = run(service.calculate(two_vendor_lines, address, subtotal=220, free_delivery_minimum=200))

        assert summary.total_delivery_fee == 0

    def test_amount_to_free_delivery_monotonic(self, settings, vendors):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)
        previous = None
        for subtotal in range(0, 700, 7):
            *_, remaining = service.free_delivery(False, float(subtotal))
            if previous is not None:
                assert remaining <= previous
            if subtotal >= 499:
                assert remaining == 0
            previous = remaining

    def test_vendor_lookup_failure_uses_fallback(self, settings, address, two_vendor_lines):
        vendors = FakeVendorRepository(locations={"vendor-a": point_north_of(*HOME, km=3.0)})
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        summary = run(service.calculate(two_vendor_lines, address, subtotal=100))

        by_id = {v.vendor_id: v for v in summary.vendors}
        assert by_id["vendor-a"].delivery_fee == 25
        assert by_id["vendor-a"].is_fallback is False
        assert by_id["vendor-b"].delivery_fee == 30
        assert by_id["vendor-b"].distance_km == 5
        assert by_id["vendor-b"].is_fallback is True
        assert summary.total_delivery_fee == 55
        assert summary.failed_vendor_ids == ["vendor-b"]
        assert "1 vendor" in summary.error

    def test_fee_rpc_failure_keeps_distance(self, settings, vendors, address, two_vendor_lines):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(fail=True), settings)

        summary = run(service.calculate(two_vendor_lines, address, subtotal=100))

        assert [(v.distance_km, v.original_fee) for v in summary.vendors] == [(3.0, 30), (8.0, 30)]
        assert summary.total_delivery_fee == 60
        assert summary.failed_vendor_ids == ["vendor-a", "vendor-b"]

    def test_fallback_fee_also_waived(self, settings, address, two_vendor_lines):
        service = DeliveryFeeService(FakeVendorRepository(), FakeDeliveryFeeRepository(), settings)

        summary = run(service.calculate(two_vendor_lines, address, has_free_delivery=True))

        assert summary.total_delivery_fee == 0
        assert summary.original_delivery_fee == 60

    def test_no_address_or_empty_cart(self, settings, vendors, address, two_vendor_lines):
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        assert run(service.calculate(two_vendor_lines, None)).vendors == []
        assert run(service.calculate([], address)).vendors == []
        assert vendors.calls == []

    def test_lookups_run_concurrently(self, settings, address, two_vendor_lines):
        vendors = FakeVendorRepository(
            locations={
                "vendor-a": point_north_of(*HOME, km=3.0),
                "vendor-b": point_north_of(*HOME, km=8.0),
            },
            delays={"vendor-a": 0.2, "vendor-b": 0.2},
        )
        service = DeliveryFeeService(vendors, FakeDeliveryFeeRepository(), settings)

        started = time.perf_counter()
        run(service.calculate(two_vendor_lines, address))
        elapsed = time.perf_counter() - started

        assert elapsed < 0.35


class TestDeliveryFeeTracker:
    def test_stale_result_discarded(self, settings, address, two_vendor_lines):
        slow = FakeVendorRepository(
            locations={"vendor-a": point_north_of(*HOME, km=3.0), "vendor-b": point_north_of(*HOME, km=8.0)},
            delays={"vendor-a": 0.2},
        )
        tracker = DeliveryFeeTracker(DeliveryFeeService(slow, FakeDeliveryFeeRepository(), settings))

        async def scenario():
            first = asyncio.create_task(
                tracker.recalculate(lines=two_vendor_lines, address=address, subtotal=100)
            )
            await asyncio.sleep(0)
            assert tracker.is_calculating is True
            assert tracker.checkout_ready is False

            # newer trigger: cart now only holds vendor-b
            second = await tracker.recalculate(lines=two_vendor_lines[1:2], address=address, subtotal=100)
            assert second is not None
            assert await first is None
            return second

        latest = asyncio.run(scenario())

        assert tracker.latest is latest
        assert [v.vendor_id for v in tracker.latest.vendors] == ["vendor-b"]
        assert tracker.is_calculating is False
        assert tracker.checkout_ready is True
