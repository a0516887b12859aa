"""Delivery reacts to Driver events — copies fixes onto the in-transit delivery.

Runs in its own transaction after the driver's position was stored, so a
failure here never loses the driver's own location.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from logistics.delivery.delivery import Delivery
from logistics.delivery.guard import DeliveryStatus
from logistics.domain import logistics
from logistics.driver.driver import Driver
from logistics.driver.events import DriverPositionReported

logger = structlog.get_logger(__name__)


@logistics.event_handler(part_of=Driver)
class DriverPositionHandler:
    @handle(DriverPositionReported)
    def on_position_reported(self, event: DriverPositionReported) -> None:
        repo = current_domain.repository_for(Delivery)
        delivery = self._target_delivery(repo, event)
        if delivery is None:
            return

        delivery.record_driver_location(event.latitude, event.longitude, event.accuracy)
        repo.add(delivery)

    def _target_delivery(self, repo, event) -> Delivery | None:
        if event.delivery_id:
            try:
                delivery = repo.get(event.delivery_id)
            except ObjectNotFoundError:
                logger.warning(
                    "position_for_unknown_delivery",
                    driver_id=str(event.driver_id),
                    delivery_id=str(event.delivery_id),
                )
                return None
            if str(delivery.driver_id) != str(event.driver_id) or delivery.status != DeliveryStatus.IN_TRANSIT.value:
                logger.info(
                    "position_not_applied",
                    driver_id=str(event.driver_id),
                    delivery_id=str(event.delivery_id),
                    status=delivery.status,
                )
                return None
            return delivery

        in_transit = repo.in_transit_for_driver(event.driver_id)
        if not in_transit:
            return None
        if len(in_transit) > 1:
            logger.warning(
                "ambiguous_in_transit_deliveries",
                driver_id=str(event.driver_id),
                delivery_ids=[str(d.id) for d in in_transit],
            )
            return None
        return in_transit[0]
