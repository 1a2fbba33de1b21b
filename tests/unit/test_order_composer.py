"""
Unit tests for composing the vendor-partitioned order group.
"""

import pytest

from cartengine.models.cart import CartLine
from cartengine.schemas.coupon import ActiveDiscount
from cartengine.schemas.delivery import DeliveryFeeSummary, VendorDeliveryInfo
from cartengine.services.order_service import compose_order


@pytest.fixture
def lines(make_product):
    return [
        CartLine(product=make_product("a", 100, vendor_id="vendor-a", discount_price=90), quantity=2),
        CartLine(product=make_product("b", 50, vendor_id="vendor-b"), quantity=1),
        CartLine(product=make_product("c", 30, vendor_id="vendor-a"), quantity=1),
    ]


@pytest.fixture
def delivery():
    return DeliveryFeeSummary(
        vendors=[
            VendorDeliveryInfo(vendor_id="vendor-a", distance_km=3.0, original_fee=25, delivery_fee=25),
            VendorDeliveryInfo(vendor_id="vendor-b", distance_km=8.0, original_fee=40, delivery_fee=40),
        ],
        total_delivery_fee=65,
        original_delivery_fee=65,
        vendor_count=2,
        amount_to_free_delivery=239,
    )


class TestComposeOrder:
    def test_vendor_breakdown(self, lines, delivery):
        order = compose_order(lines, None, delivery)

        assert [v.vendor_id for v in order.vendors] == ["vendor-a", "vendor-b"]
        a, b = order.vendors
        assert a.subtotal == 210
        assert a.item_count == 3
        assert a.delivery_fee == 25
        assert a.distance_km == 3.0
        assert [i.product_id for i in a.items] == ["a", "c"]
        assert a.items[0].effective_price == 90
        assert a.items[0].line_total == 180
        assert b.subtotal == 50
        assert b.delivery_fee == 40

        assert order.total_items == 4
        assert order.subtotal == 260
        assert order.total_delivery_fee == 65
        assert order.discount_amount == 0
        assert order.coupon_code is None
        assert order.grand_total == 325

    def test_whole_order_discount(self, lines, delivery, make_coupon):
        discount = ActiveDiscount.from_coupon(make_coupon(discount_type="percent", discount_value=10))

        order = compose_order(lines, discount, delivery)

        assert order.discount_amount == 26
        assert order.coupon_code == "SAVE"
        assert order.coupon_id == "coupon-save"
        assert order.discount_vendor_id is None
        assert all(v.discount == 0 for v in order.vendors)
        assert order.grand_total == 299

    def test_vendor_scoped_discount(self, lines, delivery, make_coupon):
        coupon = make_coupon(discount_type="percent", discount_value=10, applicable_to="vendor", applicable_id="vendor-b")

        order = compose_order(lines, ActiveDiscount.from_coupon(coupon), delivery)

        assert order.discount_vendor_id == "vendor-b"
        assert [v.discount for v in order.vendors] == [0, 5]
        assert order.discount_amount == 5
        assert order.grand_total == 320

    def test_vendor_scoped_discount_for_absent_vendor(self, lines, delivery, make_coupon):
        coupon = make_coupon(discount_value=40, applicable_to="vendor", applicable_id="vendor-z")

        order = compose_order(lines, ActiveDiscount.from_coupon(coupon), delivery)

        assert order.discount_amount == 0
        assert order.grand_total == 325

    def test_discount_recomputed_not_reused(self, lines, delivery, make_coupon):
        discount = ActiveDiscount.from_coupon(make_coupon(discount_value=20))
        discount.discount_amount = 999

        assert compose_order(lines, discount, delivery).discount_amount == 20

    def test_free_delivery_carried_through(self, lines, make_coupon):
        delivery = DeliveryFeeSummary(
            vendors=[
                VendorDeliveryInfo(vendor_id="vendor-a", distance_km=3.0, original_fee=25, delivery_fee=0),
                VendorDeliveryInfo(vendor_id="vendor-b", distance_km=8.0, original_fee=40, delivery_fee=0),
            ],
            original_delivery_fee=65,
            is_free_delivery=True,
            free_delivery_reason="coupon",
            qualifies_by_coupon=True,
        )
        coupon = make_coupon(discount_value=0, includes_free_delivery=True)

        order = compose_order(lines, ActiveDiscount.from_coupon(coupon), delivery)

        assert order.total_delivery_fee == 0
        assert order.original_delivery_fee == 65
        assert order.free_delivery_reason == "coupon"
        assert order.grand_total == 260

    def test_grand_total_never_negative(self, make_product):
        lines = [CartLine(product=make_product("a", 10), quantity=1)]
        discount = ActiveDiscount(coupon_id="x", code="BIG", discount_type="flat", discount_value=500)

        order = compose_order(lines, discount, DeliveryFeeSummary())

        assert order.discount_amount == 10
        assert order.grand_total == 0

    def test_lines_without_vendor_have_no_fee(self, make_product, delivery):
        lines = [
            CartLine(product=make_product("a", 10, vendor_id="vendor-a"), quantity=1),
            CartLine(product=make_product("x", 5, vendor_id=None), quantity=2),
        ]

        order = compose_order(lines, None, delivery)

        orphan = order.vendors[-1]
        assert orphan.vendor_id is None
        assert orphan.delivery_fee == 0
        assert orphan.subtotal == 10
        assert order.grand_total == 45

    def test_delivery_warning_surfaced(self, lines, delivery):
        delivery.error = "Delivery fee unavailable for 1 vendor(s); an estimated fee was used"

        assert compose_order(lines, None, delivery).delivery_warning == delivery.error

    def test_inputs_not_modified(self, lines, delivery, make_coupon):
        discount = ActiveDiscount.from_coupon(make_coupon(discount_value=20))
        before = [line.model_dump() for line in lines]

        compose_order(lines, discount, delivery)

        assert [line.model_dump() for line in lines] == before
        assert discount.discount_amount == 0
