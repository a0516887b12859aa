"""Pure projections over a scoped delivery snapshot."""

from datetime import date, datetime

from logistics.config import setting
from logistics.delivery.guard import DeliveryStatus
from logistics.shared.clock import utc_now

_ACTIVE = {
    DeliveryStatus.ASSIGNED.value,
    DeliveryStatus.PICKED_UP.value,
    DeliveryStatus.IN_TRANSIT.value,
}


def is_active(delivery: dict) -> bool:
    return delivery.get("status") in _ACTIVE


def status_counts(deliveries: list[dict]) -> dict[str, int]:
    """Bucket counts for the dashboard tiles.

    Buckets are disjoint and add up to ``total``; ``active`` means picked up
    or on the way.
    """
    counts = {"total": len(deliveries), "pending": 0, "assigned": 0, "active": 0, "delivered": 0, "cancelled": 0}
    buckets = {
        DeliveryStatus.PENDING.value: "pending",
        DeliveryStatus.ASSIGNED.value: "assigned",
        DeliveryStatus.PICKED_UP.value: "active",
        DeliveryStatus.IN_TRANSIT.value: "active",
        DeliveryStatus.DELIVERED.value: "delivered",
        DeliveryStatus.CANCELLED.value: "cancelled",
    }
    for delivery in deliveries:
        bucket = buckets.get(delivery.get("status"))
        if bucket:
            counts[bucket] += 1
    return counts


def truncate_address(address: str | None, length: int | None = None) -> str:
    if not address:
        return ""
    length = length or int(setting("ADDRESS_PREVIEW_LENGTH"))
    if len(address) <= length:
        return address
    return address[:length].rstrip() + "..."


def _day(value) -> date | None:
    if not value:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.date()


def completed_today(deliveries: list[dict], today: date | None = None) -> list[dict]:
    today = today or utc_now().date()
    return [
        delivery
        for delivery in deliveries
        if delivery.get("status") == DeliveryStatus.DELIVERED.value and _day(delivery.get("delivered_at")) == today
    ]


def earnings_today(deliveries: list[dict], today: date | None = None) -> int:
    return sum(delivery.get("driver_earnings") or 0 for delivery in completed_today(deliveries, today))
