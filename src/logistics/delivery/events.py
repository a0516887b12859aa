"""Delivery domain events — immutable facts about delivery state changes.

Every event carries the delivery id plus the scope keys (company, customer,
driver) so downstream handlers can route it without another lookup.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from logistics.domain import logistics


@logistics.event(part_of="Delivery")
class DeliveryCreated:
    """An operator registered a new delivery; it starts out pending."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    customer_name = String(required=True)
    customer_address = Text(required=True)
    delivery_fee = Integer()
    created_at = DateTime(required=True)


@logistics.event(part_of="Delivery")
class DeliveryAssigned:
    """The delivery was handed to a driver."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    driver_name = String()
    assigned_by = Identifier()
    assigned_at = DateTime(required=True)


@logistics.event(part_of="Delivery")
class DeliveryPickedUp:
    """The driver collected the goods."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    picked_up_at = DateTime(required=True)


@logistics.event(part_of="Delivery")
class DeliveryInTransit:
    """The driver is on the way to the customer."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    started_at = DateTime(required=True)


@logistics.event(part_of="Delivery")
class DeliveryCompleted:
    """The goods were handed over; the delivery is now immutable."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    driver_earnings = Integer()
    delivered_at = DateTime(required=True)


@logistics.event(part_of="Delivery")
class DeliveryCancelled:
    """An operator withdrew the delivery before completion."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    driver_id = Identifier()
    previous_status = String(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@logistics.event(part_of="Delivery")
class DeliveryLocationUpdated:
    """The in-transit delivery received a new driver position."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    accuracy = Float()
    eta_minutes = Integer()
    recorded_at = DateTime(required=True)
