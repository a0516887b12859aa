"""Driver domain events."""

from protean.fields import DateTime, Float, Identifier, String

from logistics.domain import logistics


@logistics.event(part_of="Driver")
class DriverRegistered:
    __version__ = 1

    driver_id = Identifier(required=True)
    company_id = Identifier(required=True)
    name = String(required=True)
    registered_at = DateTime(required=True)


@logistics.event(part_of="Driver")
class DriverWentOnline:
    __version__ = 1

    driver_id = Identifier(required=True)
    occurred_at = DateTime(required=True)


@logistics.event(part_of="Driver")
class DriverWentOffline:
    __version__ = 1

    driver_id = Identifier(required=True)
    occurred_at = DateTime(required=True)


@logistics.event(part_of="Driver")
class DriverStatusChanged:
    """The driver was activated or deactivated by the company."""

    __version__ = 1

    driver_id = Identifier(required=True)
    status = String(required=True)
    occurred_at = DateTime(required=True)


@logistics.event(part_of="Driver")
class TrackingStarted:
    __version__ = 1

    driver_id = Identifier(required=True)
    started_at = DateTime(required=True)


@logistics.event(part_of="Driver")
class TrackingStopped:
    __version__ = 1

    driver_id = Identifier(required=True)
    reason = String()
    stopped_at = DateTime(required=True)


@logistics.event(part_of="Driver")
class DriverPositionReported:
    """A fix from the driver's device became the driver's current position.

    ``delivery_id`` is set when the device names the delivery it is serving.
    """

    __version__ = 1

    driver_id = Identifier(required=True)
    company_id = Identifier(required=True)
    delivery_id = Identifier()
    latitude = Float(required=True)
    longitude = Float(required=True)
    accuracy = Float()
    captured_at = DateTime()
    reported_at = DateTime(required=True)
