"""Delivery aggregate (CQRS) — the authoritative record of a single delivery.

Holds the status, the assigned driver and the last known driver position.
Status changes go through the transition guard; location updates touch only
the location fields and never move the status.
"""

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text, ValueObject

from logistics.config import setting
from logistics.delivery.events import (
    DeliveryAssigned,
    DeliveryCancelled,
    DeliveryCompleted,
    DeliveryCreated,
    DeliveryInTransit,
    DeliveryLocationUpdated,
    DeliveryPickedUp,
)
from logistics.delivery.guard import (
    ACTIVE_STATUSES,
    DeliveryStatus,
    RejectionReason,
    TransitionRejected,
    check_assignment,
    check_cancellation,
    check_driver_advance,
)
from logistics.domain import logistics
from logistics.shared.clock import stamp_after, utc_now
from logistics.shared.geo import GeoPoint, eta_minutes


@logistics.value_object(part_of="Delivery")
class CustomerSnapshot:
    """Customer details copied onto the delivery when it is created.

    Not re-synced when the customer record changes later.
    """

    name = String(required=True, max_length=200)
    address = String(required=True, max_length=500)
    phone = String(max_length=50)


@logistics.aggregate
class Delivery:
    company_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    customer = ValueObject(CustomerSnapshot)
    customer_location = ValueObject(GeoPoint)
    driver_id = Identifier()
    driver_name = String(max_length=200)
    status = String(
        choices=DeliveryStatus,
        default=DeliveryStatus.PENDING.value,
    )
    delivery_fee = Integer(min_value=0, default=0)
    driver_earnings = Integer(min_value=0)
    notes = Text()
    driver_location = ValueObject(GeoPoint)
    last_location_update = DateTime()
    eta_minutes = Integer()
    created_by = Identifier()
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    status_changed_at = DateTime()
    updated_at = DateTime()
    assigned_at = DateTime()
    picked_up_at = DateTime()
    started_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def driver_present_once_assigned(self):
        status = DeliveryStatus(self.status)
        if status == DeliveryStatus.PENDING and self.driver_id:
            raise ValidationError({"driver_id": ["A pending delivery cannot have a driver"]})
        if (status in ACTIVE_STATUSES or status == DeliveryStatus.DELIVERED) and not self.driver_id:
            raise ValidationError({"driver_id": [f"A {status.value} delivery must have a driver"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        company_id: str,
        customer_id: str,
        customer_name: str,
        customer_address: str,
        customer_phone: str | None = None,
        customer_location: GeoPoint | None = None,
        delivery_fee: int | None = None,
        notes: str | None = None,
        created_by: str | None = None,
    ):
        """Create a pending delivery for a customer."""
        errors = {}
        if not (customer_name or "").strip():
            errors["customer_name"] = ["Customer name is required"]
        if not (customer_address or "").strip():
            errors["customer_address"] = ["Customer address is required"]
        if errors:
            raise ValidationError(errors)

        if delivery_fee is None:
            delivery_fee = setting("DEFAULT_DELIVERY_FEE")

        now = utc_now()
        delivery = cls(
            company_id=company_id,
            customer_id=customer_id,
            customer=CustomerSnapshot(
                name=customer_name.strip(),
                address=customer_address.strip(),
                phone=customer_phone,
            ),
            customer_location=customer_location,
            status=DeliveryStatus.PENDING.value,
            delivery_fee=delivery_fee,
            notes=notes,
            created_by=created_by,
            created_at=now,
            status_changed_at=now,
            updated_at=now,
        )
        delivery.raise_(
            DeliveryCreated(
                delivery_id=str(delivery.id),
                company_id=company_id,
                customer_id=customer_id,
                customer_name=delivery.customer.name,
                customer_address=delivery.customer.address,
                delivery_fee=delivery_fee,
                created_at=now,
            )
        )
        return delivery

    # -------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------
    def assign(self, driver_id: str, driver_name: str | None = None, assigned_by: str | None = None) -> None:
        """Hand the delivery to a driver. Availability is checked by the engine."""
        check_assignment(DeliveryStatus(self.status), str(self.id))

        now = utc_now()
        with atomic_change(self):
            self.status = DeliveryStatus.ASSIGNED.value
            self.driver_id = driver_id
            self.driver_name = driver_name
            self.assigned_at = now
            self.status_changed_at = now
            self.updated_at = now

        self.raise_(
            DeliveryAssigned(
                delivery_id=str(self.id),
                company_id=str(self.company_id),
                customer_id=str(self.customer_id),
                driver_id=driver_id,
                driver_name=driver_name or "",
                assigned_by=assigned_by,
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Driver progression
    # -------------------------------------------------------------------
    def advance(self, actor_id: str, target_status: DeliveryStatus | None = None) -> DeliveryStatus:
        """Move exactly one step forward on behalf of the assigned driver."""
        target = check_driver_advance(
            DeliveryStatus(self.status),
            self.driver_id,
            actor_id,
            target_status,
            str(self.id),
        )

        now = utc_now()
        self.status = target.value
        self.status_changed_at = now
        self.updated_at = now

        scope = {
            "delivery_id": str(self.id),
            "company_id": str(self.company_id),
            "customer_id": str(self.customer_id),
            "driver_id": str(self.driver_id),
        }
        if target == DeliveryStatus.PICKED_UP:
            self.picked_up_at = now
            self.raise_(DeliveryPickedUp(picked_up_at=now, **scope))
        elif target == DeliveryStatus.IN_TRANSIT:
            self.started_at = now
            self.raise_(DeliveryInTransit(started_at=now, **scope))
        else:
            self.delivered_at = now
            if not self.driver_earnings:
                self.driver_earnings = self.delivery_fee or 0
            self.raise_(
                DeliveryCompleted(
                    driver_earnings=self.driver_earnings,
                    delivered_at=now,
                    **scope,
                )
            )
        return target

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason: str | None = None) -> None:
        """Withdraw the delivery; allowed from any non-terminal state."""
        previous = DeliveryStatus(self.status)
        check_cancellation(previous, str(self.id))

        now = utc_now()
        self.status = DeliveryStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.status_changed_at = now
        self.updated_at = now
        self.raise_(
            DeliveryCancelled(
                delivery_id=str(self.id),
                company_id=str(self.company_id),
                customer_id=str(self.customer_id),
                driver_id=self.driver_id,
                previous_status=previous.value,
                reason=reason or "",
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Location
    # -------------------------------------------------------------------
    def record_driver_location(self, latitude: float, longitude: float, accuracy: float | None = None) -> None:
        """Overwrite the current driver position. Status is left untouched."""
        if DeliveryStatus(self.status) != DeliveryStatus.IN_TRANSIT:
            raise TransitionRejected(
                RejectionReason.NOT_IN_TRANSIT,
                "Driver location is only tracked while the delivery is in transit",
                str(self.id),
                self.status,
            )

        point = GeoPoint(latitude=latitude, longitude=longitude, accuracy=accuracy)
        recorded_at = stamp_after(self.last_location_update)
        eta = eta_minutes(point, self.customer_location, float(setting("AVERAGE_SPEED_KMH")))

        self.driver_location = point
        self.last_location_update = recorded_at
        self.eta_minutes = eta
        self.raise_(
            DeliveryLocationUpdated(
                delivery_id=str(self.id),
                company_id=str(self.company_id),
                customer_id=str(self.customer_id),
                driver_id=str(self.driver_id),
                latitude=latitude,
                longitude=longitude,
                accuracy=accuracy,
                eta_minutes=eta,
                recorded_at=recorded_at,
            )
        )
