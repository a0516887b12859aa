"""Position log — the recent driver trail of each delivery.

The delivery itself only keeps the latest position. This view keeps the
last N positions so a route can be drawn or replayed after the fact. Older
entries are pruned as new ones arrive.
"""

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer
from protean.utils.globals import current_domain

from logistics.config import setting
from logistics.delivery.delivery import Delivery
from logistics.delivery.events import DeliveryLocationUpdated
from logistics.domain import logistics


@logistics.projection
class PositionLogEntry:
    id = Identifier(identifier=True)
    delivery_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    accuracy = Float()
    eta_minutes = Integer()
    recorded_at = DateTime(required=True)


def _entries_for(delivery_id: str, limit: int) -> list[PositionLogEntry]:
    """Newest entries first."""
    repo = current_domain.repository_for(PositionLogEntry)
    return (
        repo._dao.query.filter(delivery_id=str(delivery_id))
        .order_by("-recorded_at")
        .limit(limit)
        .all()
        .items
    )


def route_for(delivery_id: str) -> list[PositionLogEntry]:
    """Logged positions of a delivery, oldest first."""
    return list(reversed(_entries_for(delivery_id, int(setting("POSITION_LOG_LIMIT")))))


@logistics.projector(projector_for=PositionLogEntry, aggregates=[Delivery])
class PositionLogProjector:
    @on(DeliveryLocationUpdated)
    def on_location_updated(self, event):
        repo = current_domain.repository_for(PositionLogEntry)
        repo.add(
            PositionLogEntry(
                id=f"{event.delivery_id}-{event.recorded_at.isoformat()}",
                delivery_id=event.delivery_id,
                driver_id=event.driver_id,
                latitude=event.latitude,
                longitude=event.longitude,
                accuracy=event.accuracy,
                eta_minutes=event.eta_minutes,
                recorded_at=event.recorded_at,
            )
        )

        limit = int(setting("POSITION_LOG_LIMIT"))
        # Pruned on every write, so at most one entry is ever beyond the limit
        for stale in _entries_for(event.delivery_id, limit + 1)[limit:]:
            repo._dao.delete(stale)
