"""Status transition guard — the legal delivery state machine.

State Machine:
    PENDING → ASSIGNED → PICKED_UP → IN_TRANSIT → DELIVERED
    {PENDING, ASSIGNED, PICKED_UP, IN_TRANSIT} → CANCELLED   (operator only)

PENDING → ASSIGNED happens only through the assignment engine. Every later
step is taken by the assigned driver, exactly one step at a time. Rejections
are raised, never silently ignored, and carry a reason so callers can tell a
duplicate request ("already in this state or later") from a premature one.
"""

from enum import Enum

from protean.exceptions import InvalidOperationError


class DeliveryStatus(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


LIFECYCLE = (
    DeliveryStatus.PENDING,
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
)

ACTIVE_STATUSES = frozenset({DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT})
TERMINAL_STATUSES = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset({DeliveryStatus.PENDING}) | ACTIVE_STATUSES


class RejectionReason(Enum):
    ALREADY_APPLIED = "already_applied"
    OUT_OF_SEQUENCE = "out_of_sequence"
    TERMINAL = "terminal"
    OPERATOR_ONLY = "operator_only"
    NOT_ASSIGNED_DRIVER = "not_assigned_driver"
    DRIVER_UNAVAILABLE = "driver_unavailable"
    DRIVER_BUSY = "driver_busy"
    NOT_IN_TRANSIT = "not_in_transit"
    STALE_STATUS = "stale_status"


class TransitionRejected(InvalidOperationError):
    """A status change was refused; the delivery was not modified."""

    def __init__(
        self,
        reason: RejectionReason,
        message: str,
        delivery_id: str | None = None,
        current_status: str | None = None,
        requested_status: str | None = None,
    ):
        super().__init__({"status": [message]})
        self.messages = {"status": [message]}
        self.reason = reason
        self.message = message
        self.delivery_id = delivery_id
        self.current_status = current_status
        self.requested_status = requested_status

    def __str__(self):
        return self.message


def rank(status: DeliveryStatus) -> int:
    """Position of ``status`` in the lifecycle; CANCELLED sits outside it."""
    return LIFECYCLE.index(status) if status in LIFECYCLE else -1


def next_status(current: DeliveryStatus) -> DeliveryStatus | None:
    if current in TERMINAL_STATUSES:
        return None
    return LIFECYCLE[rank(current) + 1]


def check_target(current: DeliveryStatus, target: DeliveryStatus, delivery_id: str | None = None) -> None:
    """Reject any requested target that is not exactly the next legal state."""
    if current in TERMINAL_STATUSES:
        raise TransitionRejected(
            RejectionReason.TERMINAL,
            f"Delivery is {current.value} and accepts no further transitions",
            delivery_id,
            current.value,
            target.value,
        )

    if target == DeliveryStatus.CANCELLED:
        return

    if rank(target) <= rank(current):
        raise TransitionRejected(
            RejectionReason.ALREADY_APPLIED,
            f"Delivery is already {current.value}; cannot move to {target.value}",
            delivery_id,
            current.value,
            target.value,
        )
    if rank(target) > rank(current) + 1:
        raise TransitionRejected(
            RejectionReason.OUT_OF_SEQUENCE,
            f"Cannot transition from {current.value} to {target.value}",
            delivery_id,
            current.value,
            target.value,
        )


def check_assignment(current: DeliveryStatus, delivery_id: str | None = None) -> None:
    """Only a PENDING delivery can be assigned."""
    check_target(current, DeliveryStatus.ASSIGNED, delivery_id)


def check_driver_advance(
    current: DeliveryStatus,
    assigned_driver_id: str | None,
    actor_id: str,
    target: DeliveryStatus | None = None,
    delivery_id: str | None = None,
) -> DeliveryStatus:
    """Authorize a driver-initiated step and return the status it leads to."""
    if current in TERMINAL_STATUSES:
        raise TransitionRejected(
            RejectionReason.TERMINAL,
            f"Delivery is {current.value} and accepts no further transitions",
            delivery_id,
            current.value,
            target.value if target else None,
        )

    if current == DeliveryStatus.PENDING:
        raise TransitionRejected(
            RejectionReason.OPERATOR_ONLY,
            "A pending delivery can only be assigned by an operator",
            delivery_id,
            current.value,
            target.value if target else None,
        )

    if not assigned_driver_id or str(assigned_driver_id) != str(actor_id):
        raise TransitionRejected(
            RejectionReason.NOT_ASSIGNED_DRIVER,
            "Only the assigned driver can advance this delivery",
            delivery_id,
            current.value,
            target.value if target else None,
        )

    if target == DeliveryStatus.CANCELLED:
        raise TransitionRejected(
            RejectionReason.OPERATOR_ONLY,
            "Only an operator can cancel a delivery",
            delivery_id,
            current.value,
            target.value,
        )
    if target is not None:
        check_target(current, target, delivery_id)

    return next_status(current)


def check_cancellation(current: DeliveryStatus, delivery_id: str | None = None) -> None:
    if current not in CANCELLABLE_STATUSES:
        raise TransitionRejected(
            RejectionReason.TERMINAL,
            f"Cannot cancel a delivery that is {current.value}",
            delivery_id,
            current.value,
            DeliveryStatus.CANCELLED.value,
        )
