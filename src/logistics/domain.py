"""Logistics bounded context — delivery lifecycle and live location tracking.

Owns the Delivery and Driver aggregates: operators create and assign
deliveries, drivers advance them through a strict status pipeline while their
devices stream positions, and every change is fanned out to the operator,
driver and customer consoles watching the affected records. Uses CQRS: the
aggregates are the single source of truth, views are projections.
"""

from protean.domain import Domain

from logistics.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

logistics = Domain(name="logistics")
