"""Delivery cancellation — operator-only command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.delivery.delivery import Delivery
from logistics.delivery.guard import DeliveryStatus
from logistics.delivery.repository import delivery_locks, serialized
from logistics.domain import logistics

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Delivery")
class CancelDelivery:
    delivery_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = Identifier()


@logistics.command_handler(part_of=Delivery)
class CancelDeliveryHandler:
    @serialized(delivery_locks, lambda command: command.delivery_id)
    @handle(CancelDelivery)
    def cancel_delivery(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        expected = DeliveryStatus(delivery.status)
        delivery.cancel(command.reason)
        repo.save_transition(delivery, expected)
        logger.info(
            "delivery_cancelled",
            delivery_id=str(delivery.id),
            previous_status=expected.value,
            cancelled_by=command.cancelled_by,
        )
