"""Driver aggregate — availability flags and the driver's general position.

The position here is independent of any delivery: the operator map shows it
even when the driver is idle. The last known position is only ever
overwritten by a newer fix, never cleared.
"""

from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, ValueObject

from logistics.domain import logistics
from logistics.driver.events import (
    DriverPositionReported,
    DriverRegistered,
    DriverStatusChanged,
    DriverWentOffline,
    DriverWentOnline,
    TrackingStarted,
    TrackingStopped,
)
from logistics.shared.clock import stamp_after, utc_now
from logistics.shared.geo import GeoPoint


class DriverStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@logistics.aggregate
class Driver:
    company_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    phone = String(max_length=50)
    vehicle_number = String(max_length=50)
    status = String(choices=DriverStatus, default=DriverStatus.ACTIVE.value)
    is_online = Boolean(default=False)
    is_tracking = Boolean(default=False)
    location = ValueObject(GeoPoint)
    last_seen = DateTime()
    registered_at = DateTime()

    @classmethod
    def register(cls, company_id: str, name: str, phone: str | None = None, vehicle_number: str | None = None):
        if not (name or "").strip():
            raise ValidationError({"name": ["Driver name is required"]})

        now = utc_now()
        driver = cls(
            company_id=company_id,
            name=name.strip(),
            phone=phone,
            vehicle_number=vehicle_number,
            registered_at=now,
        )
        driver.raise_(
            DriverRegistered(
                driver_id=str(driver.id),
                company_id=company_id,
                name=driver.name,
                registered_at=now,
            )
        )
        return driver

    @property
    def is_active(self) -> bool:
        return DriverStatus(self.status) == DriverStatus.ACTIVE

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def go_online(self) -> None:
        if not self.is_active:
            raise ValidationError({"status": ["An inactive driver cannot go online"]})
        now = utc_now()
        self.is_online = True
        self.last_seen = now
        self.raise_(DriverWentOnline(driver_id=str(self.id), occurred_at=now))

    def go_offline(self) -> None:
        now = utc_now()
        self.is_online = False
        self.is_tracking = False
        self.last_seen = now
        self.raise_(DriverWentOffline(driver_id=str(self.id), occurred_at=now))

    def deactivate(self) -> None:
        now = utc_now()
        self.status = DriverStatus.INACTIVE.value
        self.is_online = False
        self.is_tracking = False
        self.raise_(DriverStatusChanged(driver_id=str(self.id), status=self.status, occurred_at=now))

    def activate(self) -> None:
        now = utc_now()
        self.status = DriverStatus.ACTIVE.value
        self.raise_(DriverStatusChanged(driver_id=str(self.id), status=self.status, occurred_at=now))

    # -------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------
    def start_tracking(self) -> None:
        if not self.is_active:
            raise ValidationError({"status": ["An inactive driver cannot start tracking"]})
        now = utc_now()
        self.is_tracking = True
        self.is_online = True
        self.last_seen = now
        self.raise_(TrackingStarted(driver_id=str(self.id), started_at=now))

    def stop_tracking(self, reason: str | None = None) -> None:
        """Stop streaming; the last known location stays in place."""
        now = utc_now()
        self.is_tracking = False
        self.is_online = False
        self.last_seen = now
        self.raise_(TrackingStopped(driver_id=str(self.id), reason=reason or "", stopped_at=now))

    def report_position(
        self,
        latitude: float,
        longitude: float,
        accuracy: float | None = None,
        captured_at=None,
        delivery_id: str | None = None,
    ) -> None:
        if not self.is_tracking:
            raise ValidationError({"is_tracking": ["Positions are only accepted while tracking is active"]})

        now = stamp_after(self.last_seen)
        self.location = GeoPoint(latitude=latitude, longitude=longitude, accuracy=accuracy)
        self.last_seen = now
        self.raise_(
            DriverPositionReported(
                driver_id=str(self.id),
                company_id=str(self.company_id),
                delivery_id=delivery_id,
                latitude=latitude,
                longitude=longitude,
                accuracy=accuracy,
                captured_at=captured_at,
                reported_at=now,
            )
        )
