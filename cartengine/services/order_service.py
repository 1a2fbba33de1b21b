# cartengine/services/order_service.py
from collections.abc import Iterable

from cartengine.models.cart import CartLine
from cartengine.schemas.coupon import ActiveDiscount
from cartengine.schemas.delivery import DeliveryFeeSummary
from cartengine.schemas.order import OrderGroupDraft, OrderLineDraft, VendorOrderDraft
from cartengine.services.coupon_service import calculate_discount
from cartengine.services.delivery_service import group_lines_by_vendor


def _line_draft(line: CartLine) -> OrderLineDraft:
    product = line.product
    return OrderLineDraft(
        product_id=product.id,
        name=product.name,
        unit=product.unit,
        quantity=line.quantity,
        unit_price=product.price,
        discount_price=product.discount_price,
        effective_price=product.effective_price,
        line_total=line.line_total,
    )


def compose_order(
    lines: Iterable[CartLine],
    discount: ActiveDiscount | None,
    delivery: DeliveryFeeSummary,
) -> OrderGroupDraft:
    """
    Build the vendor-partitioned checkout breakdown.

    Rules:
      - one VendorOrderDraft per vendor, same grouping as delivery fees
      - discount is recomputed from the coupon terms against the current
        subtotal; a vendor-scoped coupon only discounts that vendor's
        subtotal, any other scope applies to the whole order
      - grand_total = subtotals + delivery fees - discount, never below 0

    Pure: no I/O, inputs are not modified.
    """
    fees = {info.vendor_id: info for info in delivery.vendors}

    vendors: list[VendorOrderDraft] = []
    for vendor_id, vendor_lines in group_lines_by_vendor(lines).items():
        info = fees.get(vendor_id) if vendor_id is not None else None
        vendors.append(
            VendorOrderDraft(
                vendor_id=vendor_id,
                items=[_line_draft(line) for line in vendor_lines],
                item_count=sum(line.quantity for line in vendor_lines),
                subtotal=sum(line.line_total for line in vendor_lines),
                delivery_fee=info.delivery_fee if info else 0.0,
                original_delivery_fee=info.original_fee if info else 0.0,
                distance_km=info.distance_km if info else None,
            )
        )

    subtotal = sum(v.subtotal for v in vendors)
    total_delivery = sum(v.delivery_fee for v in vendors)
    original_delivery = sum(v.original_delivery_fee for v in vendors)

    discount_amount = 0.0
    discount_vendor_id = None
    if discount is not None:
        coupon = discount.as_coupon()
        if discount.applicable_to == "vendor" and discount.applicable_id:
            discount_vendor_id = discount.applicable_id
            for vendor in vendors:
                if vendor.vendor_id == discount_vendor_id:
                    vendor.discount = calculate_discount(coupon, vendor.subtotal)
                    discount_amount = vendor.discount
        else:
            discount_amount = calculate_discount(coupon, subtotal)

    grand_total = max(0.0, subtotal + total_delivery - discount_amount)

    return OrderGroupDraft(
        vendors=vendors,
        total_items=sum(v.item_count for v in vendors),
        subtotal=round(subtotal, 2),
        total_delivery_fee=round(total_delivery, 2),
        original_delivery_fee=round(original_delivery, 2),
        discount_amount=round(discount_amount, 2),
        coupon_id=discount.coupon_id if discount else None,
        coupon_code=discount.code if discount else None,
        discount_vendor_id=discount_vendor_id,
        free_delivery_reason=delivery.free_delivery_reason,
        delivery_warning=delivery.error,
        grand_total=round(grand_total, 2),
    )
