"""Driver-driven progression — picked up, in transit, delivered.

Each request moves the delivery exactly one step. A driver may only have one
delivery in transit at a time, checked when leaving ``picked_up``. A driver's
requests run one after another so two deliveries cannot pass that check together.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.delivery.delivery import Delivery
from logistics.delivery.guard import DeliveryStatus, RejectionReason, TransitionRejected
from logistics.delivery.repository import delivery_locks, driver_locks, serialized
from logistics.domain import logistics

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Delivery")
class AdvanceDeliveryStatus:
    """Move the delivery one step forward on behalf of ``actor_id``.

    ``target_status`` is optional. When given, it must be exactly the next
    status, so a repeated tap on the same button is rejected as already
    applied rather than skipping ahead.
    """

    delivery_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    target_status = String(choices=DeliveryStatus)


@logistics.command_handler(part_of=Delivery)
class ProgressionHandler:
    @serialized(driver_locks, lambda command: command.actor_id)
    @serialized(delivery_locks, lambda command: command.delivery_id)
    @handle(AdvanceDeliveryStatus)
    def advance(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        expected = DeliveryStatus(delivery.status)
        target = DeliveryStatus(command.target_status) if command.target_status else None

        new_status = delivery.advance(command.actor_id, target)

        if new_status == DeliveryStatus.IN_TRANSIT:
            others = [d for d in repo.in_transit_for_driver(command.actor_id) if str(d.id) != str(delivery.id)]
            if others:
                raise TransitionRejected(
                    RejectionReason.DRIVER_BUSY,
                    "Finish the delivery already in transit before starting another",
                    str(delivery.id),
                    expected.value,
                    new_status.value,
                )

        repo.save_transition(delivery, expected)
        logger.info(
            "delivery_advanced",
            delivery_id=str(delivery.id),
            driver_id=str(command.actor_id),
            from_status=expected.value,
            to_status=new_status.value,
        )
        return new_status.value
