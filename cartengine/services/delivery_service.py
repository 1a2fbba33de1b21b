# cartengine/services/delivery_service.py
import asyncio
import logging
from collections.abc import Iterable

from cartengine.core.config import Settings, get_settings
from cartengine.core.geo import haversine_km
from cartengine.models.cart import CartLine
from cartengine.repositories.vendor_repo import DeliveryFeeRepository, VendorRepository
from cartengine.schemas.delivery import (
    DeliveryAddress,
    DeliveryFeeSummary,
    FreeDeliveryReason,
    VendorDeliveryInfo,
)

logger = logging.getLogger(__name__)


def group_lines_by_vendor(lines: Iterable[CartLine]) -> dict[str | None, list[CartLine]]:
    """
    Partition cart lines by product.vendor_id, keeping first-seen order.
    Lines without a vendor end up under the None key.
    """
    groups: dict[str | None, list[CartLine]] = {}
    for line in lines:
        groups.setdefault(line.product.vendor_id, []).append(line)
    return groups


class DeliveryFeeService:
    """
    Per-vendor delivery fees for the selected address.

    Steps:
      1. Group cart lines by vendor.
      2. For every vendor, concurrently: vendor coordinates -> Haversine
         distance -> `calculate_delivery_fee` RPC.
      3. Waive fees when the coupon grants free delivery or the subtotal
         reaches FREE_DELIVERY_MINIMUM; keep original_fee for display.

    A failing vendor gets FALLBACK_DELIVERY_FEE (and FALLBACK_DISTANCE_KM
    if its location is unknown); the other vendors are unaffected.
    """

    def __init__(
        self,
        vendor_repo: VendorRepository,
        fee_repo: DeliveryFeeRepository,
        settings: Settings | None = None,
    ):
        self.vendor_repo = vendor_repo
        self.fee_repo = fee_repo
        self.settings = settings or get_settings()

    # ---- internal helpers ----

    async def _vendor_fee(
        self,
        vendor_id: str,
        address: DeliveryAddress,
    ) -> VendorDeliveryInfo:
        fallback_fee = self.settings.FALLBACK_DELIVERY_FEE

        try:
            location = await self.vendor_repo.get_location(vendor_id)
        except Exception as e:
            logger.warning("Vendor %s location lookup failed: %s", vendor_id, e)
            return VendorDeliveryInfo(
                vendor_id=vendor_id,
                distance_km=self.settings.FALLBACK_DISTANCE_KM,
                original_fee=fallback_fee,
                delivery_fee=fallback_fee,
                is_fallback=True,
            )

        distance = haversine_km(
            location.latitude,
            location.longitude,
            address.latitude,
            address.longitude,
        )

        try:
            fee = await self.fee_repo.fee_for_distance(distance)
        except Exception as e:
            logger.warning("Delivery fee lookup failed for vendor %s: %s", vendor_id, e)
            return VendorDeliveryInfo(
                vendor_id=vendor_id,
                distance_km=round(distance, 2),
                original_fee=fallback_fee,
                delivery_fee=fallback_fee,
                is_fallback=True,
            )

        return VendorDeliveryInfo(
            vendor_id=vendor_id,
            distance_km=round(distance, 2),
            original_fee=fee,
            delivery_fee=fee,
        )

    # ---- public operations ----

    def free_delivery(
        self,
        has_free_delivery: bool,
        subtotal: float,
        minimum: float | None = None,
    ) -> tuple[bool, bool, FreeDeliveryReason | None, float]:
        """
        Returns (by_coupon, by_minimum, reason, amount_to_free_delivery).
        The coupon wins the reason when both apply.
        """
        minimum = self.settings.FREE_DELIVERY_MINIMUM if minimum is None else minimum
        by_minimum = subtotal >= minimum
        reason: FreeDeliveryReason | None = None
        if has_free_delivery:
            reason = "coupon"
        elif by_minimum:
            reason = "minimum_order"
        return has_free_delivery, by_minimum, reason, max(0.0, minimum - subtotal)

    async def calculate(
        self,
        lines: Iterable[CartLine],
        address: DeliveryAddress | None,
        has_free_delivery: bool = False,
        subtotal: float = 0.0,
        free_delivery_minimum: float | None = None,
    ) -> DeliveryFeeSummary:
        by_coupon, by_minimum, reason, amount_to_free = self.free_delivery(
            has_free_delivery, subtotal, free_delivery_minimum
        )
        summary = DeliveryFeeSummary(
            is_free_delivery=by_coupon or by_minimum,
            free_delivery_reason=reason,
            qualifies_by_coupon=by_coupon,
            qualifies_by_minimum=by_minimum,
            amount_to_free_delivery=amount_to_free,
        )

        groups = group_lines_by_vendor(lines)
        vendor_ids = [vid for vid in groups if vid is not None]
        if address is None or not vendor_ids:
            return summary

        # fan-out; each task maps its own failure to fallback values
        infos = await asyncio.gather(
            *(self._vendor_fee(vid, address) for vid in vendor_ids)
        )

        if summary.is_free_delivery:
            infos = [info.model_copy(update={"delivery_fee": 0.0}) for info in infos]

        failed = [info.vendor_id for info in infos if info.is_fallback]
        summary.vendors = list(infos)
        summary.vendor_count = len(infos)
        summary.total_delivery_fee = sum(info.delivery_fee for info in infos)
        summary.original_delivery_fee = sum(info.original_fee for info in infos)
        summary.failed_vendor_ids = failed
        if failed:
            summary.error = (
                f"Delivery fee unavailable for {len(failed)} vendor(s); "
                "an estimated fee was used"
            )
        return summary


class DeliveryFeeTracker:
    """
    Reactive wrapper around DeliveryFeeService.

    Every `recalculate` call is numbered; only the result of the most
    recent call is kept, whatever order the lookups finish in.
    """

    def __init__(self, service: DeliveryFeeService):
        self.service = service
        self.latest: DeliveryFeeSummary | None = None
        self._generation = 0
        self._resolved = 0

    @property
    def is_calculating(self) -> bool:
        return self._resolved != self._generation

    @property
    def checkout_ready(self) -> bool:
        return self.latest is not None and not self.is_calculating

    async def recalculate(self, **inputs) -> DeliveryFeeSummary | None:
        """
        Returns the summary, or None if a newer call superseded this one.
        """
        self._generation += 1
        generation = self._generation
        try:
            result = await self.service.calculate(**inputs)
        finally:
            if generation == self._generation:
                self._resolved = generation

        if generation != self._generation:
            logger.debug("Discarding stale delivery fee result (generation %d)", generation)
            return None
        self.latest = result
        return result
