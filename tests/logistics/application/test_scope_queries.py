"""Application tests for the scoped delivery set behind consoles and streams."""

import pytest
from logistics.consoles.projections import status_counts
from logistics.delivery.assignment import AssignDelivery
from logistics.delivery.cancellation import CancelDelivery
from logistics.delivery.creation import CreateDelivery
from logistics.delivery.delivery import Delivery
from logistics.delivery.progression import AdvanceDeliveryStatus
from logistics.driver.availability import GoOnline
from logistics.driver.registration import RegisterDriver
from logistics.fanout.queries import fetch_scope
from logistics.fanout.scope import Scope
from protean import current_domain

_SMALL_LIMITS = {"SCOPE_CLOSED_LIMIT": 2, "SCOPE_PAGE_SIZE": 2}


@pytest.fixture()
def small_limits(monkeypatch):
    monkeypatch.setattr("logistics.delivery.repository.setting", lambda name, default=None: _SMALL_LIMITS[name])


def _create(customer_id="cust-1"):
    return current_domain.process(
        CreateDelivery(
            company_id="co-1",
            customer_id=customer_id,
            customer_name="Ana Ruiz",
            customer_address="12 Harbour Road",
        ),
        asynchronous=False,
    )


def _in_transit():
    driver_id = current_domain.process(RegisterDriver(company_id="co-1", name="Sam"), asynchronous=False)
    current_domain.process(GoOnline(driver_id=driver_id), asynchronous=False)
    delivery_id = _create()
    current_domain.process(AssignDelivery(delivery_id=delivery_id, driver_id=driver_id), asynchronous=False)
    for _ in range(2):
        current_domain.process(AdvanceDeliveryStatus(delivery_id=delivery_id, actor_id=driver_id), asynchronous=False)
    return delivery_id


def _cancelled():
    delivery_id = _create()
    current_domain.process(CancelDelivery(delivery_id=delivery_id), asynchronous=False)
    return delivery_id


@pytest.mark.usefixtures("small_limits")
class TestScopeSet:
    def test_old_active_delivery_survives_many_newer_ones(self):
        in_transit = _in_transit()
        pending = [_create() for _ in range(5)]
        cancelled = [_cancelled() for _ in range(4)]

        ids = [str(d.id) for d in current_domain.repository_for(Delivery).find_by_scope("company_id", "co-1")]

        assert in_transit in ids
        assert set(pending) <= set(ids)
        assert [i for i in ids if i in cancelled] == [cancelled[3], cancelled[2]]
        assert len(ids) == 8

    def test_set_is_newest_first(self):
        older = _in_transit()
        newer = _create()

        ids = [str(d.id) for d in current_domain.repository_for(Delivery).find_by_scope("company_id", "co-1")]

        assert ids == [newer, older]

    def test_counts_keep_old_in_transit_delivery(self):
        _in_transit()
        for _ in range(3):
            _create()

        counts = status_counts(fetch_scope(Scope.operator("co-1")))

        assert counts["total"] == 4
        assert counts["active"] == 1
        assert counts["pending"] == 3

    def test_other_scopes_are_not_mixed_in(self):
        _create("cust-1")
        _create("cust-2")

        deliveries = current_domain.repository_for(Delivery).find_by_scope("customer_id", "cust-2")

        assert [d.customer_id for d in deliveries] == ["cust-2"]
