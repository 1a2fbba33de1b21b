# cartengine/services/coupon_service.py
import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from fastapi import HTTPException, status

from cartengine.models.cart import CartLine
from cartengine.models.coupon import Coupon
from cartengine.models.product import Category
from cartengine.repositories.coupon_repo import CouponRepository
from cartengine.repositories.product_repo import ProductRepository
from cartengine.schemas.coupon import (
    ConflictingItem,
    CouponEligibility,
    CouponEvaluation,
    CouponFilterResult,
)

logger = logging.getLogger(__name__)

CURRENCY = "₹"

VEG_SLUG_KEYWORDS = ("veg", "vegetable")
VEG_NAME_KEYWORDS = ("veg",)
MEAT_SLUG_KEYWORDS = ("meat", "chicken", "fish", "seafood")
MEAT_NAME_KEYWORDS = ("meat", "non-veg")


def format_amount(amount: float) -> str:
    """Whole-currency display value, rounded half-up (12.5 -> '13')."""
    return str(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---- discount ----


def calculate_discount(coupon: Coupon, order_amount: float) -> float:
    """
    Discount the coupon gives on `order_amount`.

      flat:    discount_value
      percent: order_amount * discount_value / 100, capped by max_discount

    The result is clamped to [0, order_amount] so a total can never go
    negative.
    """
    if order_amount <= 0:
        return 0.0

    if coupon.discount_type == "percent":
        raw = order_amount * coupon.discount_value / 100
        cap = coupon.max_discount if coupon.max_discount is not None else math.inf
        raw = min(raw, cap)
    else:
        raw = coupon.discount_value

    return max(0.0, min(raw, order_amount))


def discount_base(coupon: Coupon, lines: Iterable[CartLine], cart_subtotal: float) -> float:
    """
    Amount a coupon discounts against: the targeted vendor's subtotal
    for a vendor-scoped coupon, the cart subtotal otherwise.
    """
    if coupon.applicable_to == "vendor" and coupon.applicable_id:
        return sum(
            line.line_total for line in lines if line.product.vendor_id == coupon.applicable_id
        )
    return cart_subtotal


# ---- eligibility ----


def classify_category(category: Category | None) -> tuple[bool, bool]:
    """
    Keyword heuristic on a category's slug and name.

    Returns (is_veg_oriented, is_meat_oriented). Matching is plain
    substring search, so "Non-Veg" counts as veg-oriented too.
    """
    slug = category.slug if category else ""
    name = category.name.lower() if category else ""

    is_veg = any(k in slug for k in VEG_SLUG_KEYWORDS) or any(
        k in name for k in VEG_NAME_KEYWORDS
    )
    is_meat = any(k in slug for k in MEAT_SLUG_KEYWORDS) or any(
        k in name for k in MEAT_NAME_KEYWORDS
    )
    return is_veg, is_meat


def _category_name(categories: dict[str, Category], category_id: str | None) -> str | None:
    if category_id is None:
        return None
    category = categories.get(category_id)
    return category.name if category else None


def _check_veg_conflict(
    target: Category | None,
    lines: list[CartLine],
    categories: dict[str, Category],
) -> CouponEligibility:
    is_veg_coupon, _ = classify_category(target)
    if not is_veg_coupon:
        return CouponEligibility(is_eligible=True)

    non_veg = [line for line in lines if line.product.is_veg is False]
    if not non_veg:
        return CouponEligibility(is_eligible=True)

    return CouponEligibility(
        is_eligible=False,
        reason="Remove non-veg items to apply this coupon",
        conflicting_items=[
            ConflictingItem(
                id=line.product_id,
                name=line.product.name or "Unknown",
                category=_category_name(categories, line.product.category_id),
            )
            for line in non_veg
        ],
    )


def _check_category(
    coupon: Coupon,
    lines: list[CartLine],
    categories: dict[str, Category],
) -> CouponEligibility:
    target = categories.get(coupon.applicable_id)
    category_name = target.name if target and target.name else "this category"

    applicable = [line for line in lines if line.product.category_id == coupon.applicable_id]
    if not applicable:
        return CouponEligibility(
            is_eligible=False,
            reason=f"No items from {category_name} in cart",
        )

    return _check_veg_conflict(target, lines, categories)


def _check_product(coupon: Coupon, lines: list[CartLine]) -> CouponEligibility:
    if not any(line.product_id == coupon.applicable_id for line in lines):
        return CouponEligibility(
            is_eligible=False,
            reason="Required product not in cart",
        )
    return CouponEligibility(is_eligible=True)


def check_coupon_eligibility(
    coupon: Coupon,
    lines: Iterable[CartLine],
    total_price: float,
    categories: Iterable[Category] | None = None,
) -> CouponEligibility:
    """
    Decide whether `coupon` can be applied to the cart.

    Checks, in order, stopping at the first failure:
      1. minimum order amount (reports the shortfall)
      2. scope 'all'      -> eligible
      3. scope 'category' -> needs an item of that category, then the
                             veg/non-veg conflict check
      4. scope 'product'  -> needs that product in the cart
    Any other scope is eligible.
    """
    lines = list(lines)
    by_id = {c.id: c for c in (categories or [])}

    if total_price < coupon.min_order_amount:
        shortfall = coupon.min_order_amount - total_price
        return CouponEligibility(
            is_eligible=False,
            reason=f"Add {CURRENCY}{format_amount(shortfall)} more to cart",
            shortfall=shortfall,
        )

    if coupon.applicable_to == "all":
        return CouponEligibility(is_eligible=True)

    if coupon.applicable_to == "category" and coupon.applicable_id:
        return _check_category(coupon, lines, by_id)

    if coupon.applicable_to == "product" and coupon.applicable_id:
        return _check_product(coupon, lines)

    return CouponEligibility(is_eligible=True)


def coupon_suggestions(coupon: Coupon, eligibility: CouponEligibility) -> list[str]:
    """
    What the customer can do to make an ineligible coupon apply.
    """
    suggestions: list[str] = []

    if eligibility.shortfall and eligibility.shortfall > 0:
        suggestions.append(
            f"Add {CURRENCY}{format_amount(eligibility.shortfall)} worth of items to your cart"
        )

    if eligibility.conflicting_items:
        names = ", ".join(item.name for item in eligibility.conflicting_items)
        suggestions.append(f"Remove: {names}")

    if coupon.applicable_to == "product" and not eligibility.is_eligible:
        suggestions.append("Add the required product to your cart")

    if (
        coupon.applicable_to == "category"
        and not eligibility.is_eligible
        and not eligibility.conflicting_items
    ):
        suggestions.append("Add items from the required category")

    return suggestions


# ---- ranking ----


def _rank_key(evaluation: CouponEvaluation) -> tuple[int, float]:
    if evaluation.eligibility.is_eligible:
        return (0, -evaluation.discount)
    # a missing (or zero) shortfall means "not a money problem": rank last
    return (1, evaluation.eligibility.shortfall or math.inf)


def sort_coupons_by_value(evaluations: Iterable[CouponEvaluation]) -> list[CouponEvaluation]:
    """
    Eligible coupons first, biggest discount first; then ineligible ones,
    closest to qualifying first. Stable; returns a new list.
    """
    return sorted(evaluations, key=_rank_key)


def filter_coupons(
    coupons: Iterable[Coupon],
    lines: Iterable[CartLine],
    total_price: float,
    categories: Iterable[Category] | None = None,
) -> CouponFilterResult:
    lines = list(lines)
    categories = list(categories or [])

    evaluations = []
    for coupon in coupons:
        eligibility = check_coupon_eligibility(coupon, lines, total_price, categories)
        evaluations.append(
            CouponEvaluation(
                coupon=coupon,
                eligibility=eligibility,
                discount=calculate_discount(coupon, discount_base(coupon, lines, total_price)),
                suggestions=coupon_suggestions(coupon, eligibility),
            )
        )

    ranked = sort_coupons_by_value(evaluations)
    return CouponFilterResult(
        eligible=[e for e in ranked if e.eligibility.is_eligible],
        ineligible=[e for e in ranked if not e.eligibility.is_eligible],
        all=ranked,
    )


class CouponService:
    """
    Backend-facing coupon operations.

    Responsibilities:
      - load active coupons and the category metadata for the cart
      - evaluate / rank them against the current cart
      - resolve a code to an active coupon
    """

    def __init__(self, coupon_repo: CouponRepository, product_repo: ProductRepository):
        self.coupon_repo = coupon_repo
        self.product_repo = product_repo

    async def load_categories(self, lines: Iterable[CartLine]) -> list[Category] | None:
        """
        Category metadata for the cart. A failed lookup degrades to None
        (category coupons then report 'this category').
        """
        ids = sorted({line.product.category_id for line in lines if line.product.category_id})
        if not ids:
            return []
        try:
            return await self.product_repo.fetch_categories(ids)
        except Exception as e:
            logger.warning("Category lookup failed: %s", e)
            return None

    async def evaluate(self, lines: list[CartLine], total_price: float) -> CouponFilterResult:
        coupons = await self.coupon_repo.list_active()
        categories = await self.load_categories(lines)
        return filter_coupons(coupons, lines, total_price, categories)

    async def get_active_by_code(self, code: str) -> Coupon:
        coupon = await self.coupon_repo.get_active_by_code(code)
        if coupon is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invalid coupon code",
            )
        return coupon
