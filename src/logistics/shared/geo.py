"""Geographic value object and distance/ETA helpers shared by both aggregates."""

import math

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float

from logistics.domain import logistics

EARTH_RADIUS_KM = 6371.0


@logistics.value_object
class GeoPoint:
    """A latitude/longitude pair, optionally with the fix accuracy in meters."""

    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    accuracy = Float(min_value=0.0)

    @invariant.post
    def both_coordinates_required(self):
        if self.latitude is None or self.longitude is None:
            raise ValidationError({"coordinates": ["Both latitude and longitude are required"]})


def haversine_km(a: GeoPoint | None, b: GeoPoint | None) -> float:
    """Great-circle distance in kilometers; infinite when either point is missing."""
    if a is None or b is None:
        return float("inf")

    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def eta_minutes(origin: GeoPoint | None, destination: GeoPoint | None, speed_kmh: float = 30.0) -> int | None:
    """Minutes to cover the straight-line distance at a constant speed."""
    distance = haversine_km(origin, destination)
    if math.isinf(distance) or speed_kmh <= 0:
        return None
    return round(distance / speed_kmh * 60)


def format_eta(minutes: int | None) -> str:
    if minutes is None:
        return "Calculating..."
    if minutes < 1:
        return "Arriving now"
    if minutes < 60:
        return f"{minutes} min"
    return f"{minutes // 60}h {minutes % 60}m"
