"""Fan-out trigger — every Delivery event refreshes the scopes it touches."""

from protean.utils.mixins import handle

from logistics.delivery.delivery import Delivery
from logistics.delivery.events import (
    DeliveryAssigned,
    DeliveryCancelled,
    DeliveryCompleted,
    DeliveryCreated,
    DeliveryInTransit,
    DeliveryLocationUpdated,
    DeliveryPickedUp,
)
from logistics.domain import logistics
from logistics.fanout.transport import get_transport


def _scope_keys(event) -> dict:
    return {
        "company_id": getattr(event, "company_id", None),
        "driver_id": getattr(event, "driver_id", None),
        "customer_id": getattr(event, "customer_id", None),
    }


@logistics.event_handler(part_of=Delivery)
class DeliveryFanoutHandler:
    @handle(DeliveryCreated)
    def on_created(self, event):
        get_transport().publish(_scope_keys(event))

    @handle(DeliveryAssigned)
    def on_assigned(self, event):
        get_transport().publish(_scope_keys(event))

    @handle(DeliveryPickedUp)
    def on_picked_up(self, event):
        get_transport().publish(_scope_keys(event))

    @handle(DeliveryInTransit)
    def on_in_transit(self, event):
        get_transport().publish(_scope_keys(event))

    @handle(DeliveryCompleted)
    def on_completed(self, event):
        get_transport().publish(_scope_keys(event))

    @handle(DeliveryCancelled)
    def on_cancelled(self, event):
        get_transport().publish(_scope_keys(event))

    @handle(DeliveryLocationUpdated)
    def on_location_updated(self, event):
        get_transport().publish(_scope_keys(event))
