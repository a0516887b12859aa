"""Operator map markers.

One marker per active delivery that has a driver position. A marker is
moved in place when the position changes and removed once the delivery
leaves the active set; it is never torn down and recreated for a move.
"""

from dataclasses import dataclass, field

from logistics.consoles.projections import is_active


@dataclass
class Marker:
    delivery_id: str
    latitude: float
    longitude: float
    label: str = ""
    status: str = ""
    moves: int = 0

    def move_to(self, latitude: float, longitude: float) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.moves += 1


@dataclass
class MarkerChanges:
    added: list[str] = field(default_factory=list)
    moved: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    def __bool__(self):
        return bool(self.added or self.moved or self.removed)


class MarkerBoard:
    def __init__(self):
        self.markers: dict[str, Marker] = {}

    def sync(self, deliveries: list[dict]) -> MarkerChanges:
        changes = MarkerChanges()
        wanted = {}
        for delivery in deliveries:
            location = delivery.get("driver_location")
            if is_active(delivery) and location:
                wanted[delivery["id"]] = (delivery, location)

        for delivery_id in list(self.markers):
            if delivery_id not in wanted:
                del self.markers[delivery_id]
                changes.removed.append(delivery_id)

        for delivery_id, (delivery, location) in wanted.items():
            marker = self.markers.get(delivery_id)
            if marker is None:
                self.markers[delivery_id] = Marker(
                    delivery_id=delivery_id,
                    latitude=location["latitude"],
                    longitude=location["longitude"],
                    label=delivery.get("driver_name") or "",
                    status=delivery.get("status") or "",
                )
                changes.added.append(delivery_id)
                continue

            marker.status = delivery.get("status") or ""
            if (marker.latitude, marker.longitude) != (location["latitude"], location["longitude"]):
                marker.move_to(location["latitude"], location["longitude"])
                changes.moved.append(delivery_id)

        return changes


def driver_markers(drivers) -> list[dict]:
    """Idle-map pins for drivers with a known position."""
    return [
        {
            "driver_id": str(driver.id),
            "name": driver.name,
            "latitude": driver.location.latitude,
            "longitude": driver.location.longitude,
            "is_online": bool(driver.is_online),
            "is_tracking": bool(driver.is_tracking),
            "last_seen": driver.last_seen.isoformat() if driver.last_seen else None,
        }
        for driver in drivers
        if driver.location is not None
    ]
