"""Scope queries and the plain-dict snapshot observers receive."""

from protean.utils.globals import current_domain

from logistics.delivery.delivery import Delivery
from logistics.fanout.scope import Scope


def _iso(value):
    return value.isoformat() if value else None


def _point(point):
    if point is None:
        return None
    return {
        "latitude": point.latitude,
        "longitude": point.longitude,
        "accuracy": point.accuracy,
    }


def to_snapshot(delivery: Delivery) -> dict:
    customer = delivery.customer
    return {
        "id": str(delivery.id),
        "company_id": str(delivery.company_id),
        "customer_id": str(delivery.customer_id),
        "customer_name": customer.name if customer else None,
        "customer_address": customer.address if customer else None,
        "customer_phone": customer.phone if customer else None,
        "customer_location": _point(delivery.customer_location),
        "driver_id": str(delivery.driver_id) if delivery.driver_id else None,
        "driver_name": delivery.driver_name,
        "status": delivery.status,
        "delivery_fee": delivery.delivery_fee,
        "driver_earnings": delivery.driver_earnings,
        "notes": delivery.notes,
        "driver_location": _point(delivery.driver_location),
        "last_location_update": _iso(delivery.last_location_update),
        "eta_minutes": delivery.eta_minutes,
        "cancellation_reason": delivery.cancellation_reason,
        "created_at": _iso(delivery.created_at),
        "status_changed_at": _iso(delivery.status_changed_at),
        "assigned_at": _iso(delivery.assigned_at),
        "picked_up_at": _iso(delivery.picked_up_at),
        "started_at": _iso(delivery.started_at),
        "delivered_at": _iso(delivery.delivered_at),
        "cancelled_at": _iso(delivery.cancelled_at),
    }


def fetch_scope(scope: Scope) -> list[dict]:
    """The full current set of deliveries in ``scope``, newest first."""
    deliveries = current_domain.repository_for(Delivery).find_by_scope(scope.field, scope.key)
    return [to_snapshot(delivery) for delivery in deliveries]
