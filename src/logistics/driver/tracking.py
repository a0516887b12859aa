"""Driver tracking — start/stop commands and the fix upload command.

A fix always lands on the driver record. Propagation to the in-transit
delivery happens in a separate transaction (see
``logistics.delivery.driver_events``), so a failure there never loses the
driver's own position.
"""

from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.driver.driver import Driver


@logistics.command(part_of="Driver")
class StartTracking:
    driver_id = Identifier(required=True)


@logistics.command(part_of="Driver")
class StopTracking:
    driver_id = Identifier(required=True)
    reason = String(max_length=200)


@logistics.command(part_of="Driver")
class RecordDriverFix:
    """A position fix uploaded by the driver's device."""

    driver_id = Identifier(required=True)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    accuracy = Float(min_value=0.0)
    captured_at = DateTime()
    delivery_id = Identifier()


@logistics.command_handler(part_of=Driver)
class TrackingHandler:
    @handle(StartTracking)
    def start_tracking(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.start_tracking()
        repo.add(driver)

    @handle(StopTracking)
    def stop_tracking(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.stop_tracking(command.reason)
        repo.add(driver)

    @handle(RecordDriverFix)
    def record_fix(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.report_position(
            latitude=command.latitude,
            longitude=command.longitude,
            accuracy=command.accuracy,
            captured_at=command.captured_at,
            delivery_id=command.delivery_id,
        )
        repo.add(driver)
