"""Operator, driver and customer consoles.

Each console holds exactly one live subscription for its actor's scope
while it is open, and renders plain-dict views from the last snapshot it
received. ``ConsoleSession`` guarantees a role switch or sign-out closes the
previous subscription before anything else is opened.
"""

import structlog

from logistics.consoles.markers import MarkerBoard, MarkerChanges
from logistics.consoles.projections import (
    completed_today,
    earnings_today,
    is_active,
    status_counts,
    truncate_address,
)
from logistics.consoles.session import Actor, Role, scope_for
from logistics.delivery.guard import DeliveryStatus
from logistics.fanout.hub import SubscriptionHub, get_hub
from logistics.shared.geo import format_eta

logger = structlog.get_logger(__name__)

STALE_WARNING = "Live updates are unavailable. Showing the last received data."


class Console:
    role: Role

    def __init__(self, actor: Actor, hub: SubscriptionHub | None = None):
        if actor.role != self.role:
            raise ValueError(f"{self.__class__.__name__} needs a {self.role.value} actor")
        self.actor = actor
        self.hub = hub or get_hub()
        self.scope = scope_for(actor)
        self.subscription = None
        self.deliveries: list[dict] = []
        self.updates = 0

    @property
    def is_open(self) -> bool:
        return self.subscription is not None

    @property
    def warning(self) -> str | None:
        if self.subscription is not None and self.subscription.degraded:
            return STALE_WARNING
        return None

    def open(self) -> None:
        if self.is_open:
            return
        self.subscription = self.hub.subscribe(self.scope, self._on_snapshot)

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.close()
            self.subscription = None

    def retry(self) -> None:
        """User-triggered reload after a degraded subscription."""
        if self.subscription is not None:
            self.subscription.refresh()

    def _on_snapshot(self, deliveries: list[dict]) -> None:
        self.deliveries = deliveries
        self.updates += 1


class OperatorConsole(Console):
    role = Role.OPERATOR

    def __init__(self, actor: Actor, hub: SubscriptionHub | None = None):
        super().__init__(actor, hub)
        self.map = MarkerBoard()
        self.last_map_changes = MarkerChanges()

    def _on_snapshot(self, deliveries: list[dict]) -> None:
        super()._on_snapshot(deliveries)
        self.last_map_changes = self.map.sync(deliveries)

    def view(self) -> dict:
        return {
            "counts": status_counts(self.deliveries),
            "rows": [
                {
                    "id": delivery["id"],
                    "customer_name": delivery["customer_name"],
                    "address": truncate_address(delivery["customer_address"]),
                    "driver_name": delivery["driver_name"],
                    "status": delivery["status"],
                }
                for delivery in self.deliveries
            ],
            "markers": list(self.map.markers.values()),
            "warning": self.warning,
        }


class DriverConsole(Console):
    role = Role.DRIVER

    def view(self) -> dict:
        active = [delivery for delivery in self.deliveries if is_active(delivery)]
        return {
            "active": active,
            "completed_today": len(completed_today(self.deliveries)),
            "earnings_today": earnings_today(self.deliveries),
            "warning": self.warning,
        }


class CustomerConsole(Console):
    role = Role.CUSTOMER

    def view(self) -> dict:
        return {
            "orders": [
                {
                    "id": delivery["id"],
                    "status": delivery["status"],
                    "driver_name": delivery["driver_name"],
                    "driver_location": delivery["driver_location"],
                    "eta": format_eta(delivery["eta_minutes"]) if delivery["status"] == DeliveryStatus.IN_TRANSIT.value else None,
                }
                for delivery in self.deliveries
            ],
            "warning": self.warning,
        }


_CONSOLES = {
    Role.OPERATOR: OperatorConsole,
    Role.DRIVER: DriverConsole,
    Role.CUSTOMER: CustomerConsole,
}


class ConsoleSession:
    """The one console a signed-in actor has open."""

    def __init__(self, hub: SubscriptionHub | None = None):
        self.hub = hub or get_hub()
        self.console: Console | None = None

    def sign_in(self, actor: Actor) -> Console:
        self.sign_out()
        console = _CONSOLES[actor.role](actor, self.hub)
        console.open()
        self.console = console
        logger.info("console_opened", actor_id=actor.id, role=actor.role.value)
        return console

    def switch_role(self, actor: Actor) -> Console:
        return self.sign_in(actor)

    def sign_out(self) -> None:
        if self.console is not None:
            self.console.close()
            logger.info("console_closed", actor_id=self.console.actor.id, role=self.console.actor.role.value)
            self.console = None
