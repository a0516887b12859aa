"""Repository for the Delivery aggregate.

Adds the scope queries used by the fan-out and the conditional write that
makes status transitions compare-and-set.
"""

import functools
from threading import RLock

from logistics.config import setting
from logistics.delivery.delivery import Delivery
from logistics.delivery.guard import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    DeliveryStatus,
    RejectionReason,
    TransitionRejected,
)
from logistics.domain import logistics

_OPEN_STATUSES = [DeliveryStatus.PENDING.value] + [status.value for status in ACTIVE_STATUSES]
_CLOSED_STATUSES = [status.value for status in TERMINAL_STATUSES]


class StripedLocks:
    """A fixed pool of reentrant locks; keys hashing to the same stripe share one."""

    def __init__(self, stripes: int = 64):
        self._locks = [RLock() for _ in range(stripes)]

    def lock_for(self, key) -> RLock:
        return self._locks[hash(str(key)) % len(self._locks)]


# Separate pools: a driver lock may be taken before a delivery lock, never after.
delivery_locks = StripedLocks()
driver_locks = StripedLocks()


def serialized(locks: StripedLocks, key):
    """Run a command handler while holding the lock for ``key(command)``.

    Stack it above ``@handle`` so the lock is held until the handler's unit
    of work has committed.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(instance, command):
            with locks.lock_for(key(command)):
                return fn(instance, command)

        return wrapper

    return decorator


@logistics.repository(part_of=Delivery)
class DeliveryRepository:
    def find_by_scope(self, field: str, value: str) -> list[Delivery]:
        """Deliveries whose ``field`` equals ``value``, newest first.

        Every open delivery is returned. Delivered and cancelled ones are
        capped to the most recent ``SCOPE_CLOSED_LIMIT``.
        """
        query = self._dao.query.filter(**{field: str(value)}).order_by(["-created_at", "id"])
        open_deliveries = self._all_pages(query.filter(status__in=_OPEN_STATUSES))
        closed = (
            query.filter(status__in=_CLOSED_STATUSES)
            .limit(int(setting("SCOPE_CLOSED_LIMIT")))
            .all()
            .items
        )
        return sorted(open_deliveries + closed, key=lambda d: d.created_at, reverse=True)

    def _all_pages(self, query) -> list[Delivery]:
        page_size = int(setting("SCOPE_PAGE_SIZE"))
        items, offset = [], 0
        while True:
            page = query.offset(offset).limit(page_size).all().items
            items.extend(page)
            if len(page) < page_size:
                return items
            offset += page_size

    def in_transit_for_driver(self, driver_id: str) -> list[Delivery]:
        return (
            self._dao.query.filter(
                driver_id=str(driver_id),
                status=DeliveryStatus.IN_TRANSIT.value,
            )
            .all()
            .items
        )

    def save_transition(self, delivery: Delivery, expected_status: DeliveryStatus) -> None:
        """Persist ``delivery`` only if the stored status still equals ``expected_status``.

        A concurrent writer that moved the delivery first makes this write fail
        with a STALE_STATUS rejection instead of silently overwriting it.
        """
        delivery_id = str(delivery.id)
        with delivery_locks.lock_for(delivery_id):
            stored = self._dao.get(delivery_id)
            if stored.status != expected_status.value:
                raise TransitionRejected(
                    RejectionReason.STALE_STATUS,
                    f"Delivery moved to {stored.status} while {expected_status.value} was expected",
                    delivery_id,
                    stored.status,
                    delivery.status,
                )
            self.add(delivery)
