"""Assignment engine — hands a pending delivery to an available driver.

The engine, not the caller, decides whether a driver is eligible: the driver
must exist, be active and be online. Candidate ranking is by straight-line
distance to the customer, which lets "assign nearest" reuse the same checks
as a manual assignment.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from logistics.delivery.delivery import Delivery
from logistics.delivery.guard import (
    DeliveryStatus,
    RejectionReason,
    TransitionRejected,
    check_assignment,
)
from logistics.delivery.repository import delivery_locks, serialized
from logistics.domain import logistics
from logistics.driver.driver import Driver
from logistics.shared.geo import GeoPoint, haversine_km

logger = structlog.get_logger(__name__)


def rank_candidates(company_id: str, destination: GeoPoint | None) -> list[tuple[Driver, float]]:
    """Active, online drivers of the company, nearest first.

    Drivers without a known position sort last; when the destination is
    unknown the order falls back to the driver name.
    """
    drivers = current_domain.repository_for(Driver).available_for_company(company_id)
    ranked = [(driver, haversine_km(driver.location, destination)) for driver in drivers]
    ranked.sort(key=lambda pair: (pair[1], pair[0].name or ""))
    return ranked


def _eligible_driver(driver_id: str, delivery: Delivery) -> Driver:
    try:
        driver = current_domain.repository_for(Driver).get(driver_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Driver `{driver_id}` does not exist")

    if str(driver.company_id) != str(delivery.company_id):
        raise ObjectNotFoundError(f"Driver `{driver_id}` does not exist")

    if not driver.is_active:
        raise TransitionRejected(
            RejectionReason.DRIVER_UNAVAILABLE,
            f"Driver {driver.name} is not active",
            str(delivery.id),
            delivery.status,
            DeliveryStatus.ASSIGNED.value,
        )
    if not driver.is_online:
        raise TransitionRejected(
            RejectionReason.DRIVER_UNAVAILABLE,
            f"Driver {driver.name} is offline",
            str(delivery.id),
            delivery.status,
            DeliveryStatus.ASSIGNED.value,
        )
    return driver


def _assign(delivery: Delivery, driver: Driver, assigned_by: str | None) -> None:
    expected = DeliveryStatus(delivery.status)
    delivery.assign(str(driver.id), driver.name, assigned_by)
    current_domain.repository_for(Delivery).save_transition(delivery, expected)
    logger.info(
        "delivery_assigned",
        delivery_id=str(delivery.id),
        driver_id=str(driver.id),
        assigned_by=assigned_by,
    )


@logistics.command(part_of="Delivery")
class AssignDelivery:
    delivery_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    assigned_by = Identifier()


@logistics.command(part_of="Delivery")
class AssignNearestDriver:
    """Assign the pending delivery to the closest available driver."""

    delivery_id = Identifier(required=True)
    assigned_by = Identifier()


@logistics.command_handler(part_of=Delivery)
class AssignmentHandler:
    @serialized(delivery_locks, lambda command: command.delivery_id)
    @handle(AssignDelivery)
    def assign_delivery(self, command):
        delivery = current_domain.repository_for(Delivery).get(command.delivery_id)
        # Status first: a non-pending delivery is rejected whatever the driver
        check_assignment(DeliveryStatus(delivery.status), str(delivery.id))

        driver = _eligible_driver(command.driver_id, delivery)
        _assign(delivery, driver, command.assigned_by)
        return str(driver.id)

    @serialized(delivery_locks, lambda command: command.delivery_id)
    @handle(AssignNearestDriver)
    def assign_nearest(self, command):
        delivery = current_domain.repository_for(Delivery).get(command.delivery_id)
        check_assignment(DeliveryStatus(delivery.status), str(delivery.id))

        candidates = rank_candidates(str(delivery.company_id), delivery.customer_location)
        if not candidates:
            raise TransitionRejected(
                RejectionReason.DRIVER_UNAVAILABLE,
                "No online driver is available",
                str(delivery.id),
                delivery.status,
                DeliveryStatus.ASSIGNED.value,
            )

        driver, distance = candidates[0]
        _assign(delivery, driver, command.assigned_by)
        logger.info(
            "nearest_driver_selected",
            delivery_id=str(delivery.id),
            driver_id=str(driver.id),
            distance_km=None if distance == float("inf") else round(distance, 2),
        )
        return str(driver.id)
