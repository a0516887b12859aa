"""Delivery creation — command and handler."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from logistics.delivery.delivery import Delivery
from logistics.domain import logistics
from logistics.shared.geo import GeoPoint


@logistics.command(part_of="Delivery")
class CreateDelivery:
    """Register a new delivery for a customer. It always starts pending."""

    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    customer_name = String(max_length=200)
    customer_address = String(max_length=500)
    customer_phone = String(max_length=50)
    customer_latitude = Float(min_value=-90.0, max_value=90.0)
    customer_longitude = Float(min_value=-180.0, max_value=180.0)
    delivery_fee = Integer(min_value=0)
    notes = Text()
    created_by = Identifier()


@logistics.command_handler(part_of=Delivery)
class CreateDeliveryHandler:
    @handle(CreateDelivery)
    def create_delivery(self, command):
        destination = None
        if command.customer_latitude is not None and command.customer_longitude is not None:
            destination = GeoPoint(
                latitude=command.customer_latitude,
                longitude=command.customer_longitude,
            )

        delivery = Delivery.create(
            company_id=command.company_id,
            customer_id=command.customer_id,
            customer_name=command.customer_name,
            customer_address=command.customer_address,
            customer_phone=command.customer_phone,
            customer_location=destination,
            delivery_fee=command.delivery_fee,
            notes=command.notes,
            created_by=command.created_by,
        )
        current_domain.repository_for(Delivery).add(delivery)
        return str(delivery.id)
