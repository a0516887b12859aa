"""Application tests for driver-driven progression and cancellation."""

import threading
import time

import pytest
from logistics.delivery.assignment import AssignDelivery
from logistics.delivery.cancellation import CancelDelivery
from logistics.delivery.creation import CreateDelivery
from logistics.delivery.delivery import Delivery
from logistics.delivery.guard import DeliveryStatus, RejectionReason, TransitionRejected
from logistics.delivery.progression import AdvanceDeliveryStatus
from logistics.delivery.repository import DeliveryRepository
from logistics.domain import logistics
from logistics.driver.availability import GoOnline
from logistics.driver.registration import RegisterDriver
from logistics.fanout.hub import get_hub
from logistics.fanout.scope import Scope
from protean import current_domain


def _register_driver(name="Sam"):
    driver_id = current_domain.process(RegisterDriver(company_id="co-1", name=name), asynchronous=False)
    current_domain.process(GoOnline(driver_id=driver_id), asynchronous=False)
    return driver_id


def _assigned_delivery(driver_id):
    delivery_id = current_domain.process(
        CreateDelivery(
            company_id="co-1",
            customer_id="cust-1",
            customer_name="Ana Ruiz",
            customer_address="12 Harbour Road",
        ),
        asynchronous=False,
    )
    current_domain.process(AssignDelivery(delivery_id=delivery_id, driver_id=driver_id), asynchronous=False)
    return delivery_id


def _advance(delivery_id, actor_id, target_status=None):
    return current_domain.process(
        AdvanceDeliveryStatus(delivery_id=delivery_id, actor_id=actor_id, target_status=target_status),
        asynchronous=False,
    )


def _status(delivery_id):
    return current_domain.repository_for(Delivery).get(delivery_id).status


class TestAdvance:
    def test_walk_to_delivered(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)

        assert _advance(delivery_id, driver_id) == "picked_up"
        assert _advance(delivery_id, driver_id) == "in_transit"
        assert _advance(delivery_id, driver_id) == "delivered"

        delivery = current_domain.repository_for(Delivery).get(delivery_id)
        assert delivery.driver_earnings == delivery.delivery_fee
        assert delivery.delivered_at is not None

    def test_second_delivered_attempt_rejected(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)
        for _ in range(3):
            _advance(delivery_id, driver_id)

        before = current_domain.repository_for(Delivery).get(delivery_id)
        notices = []
        get_hub().subscribe(Scope.operator("co-1"), notices.append)

        with pytest.raises(TransitionRejected) as exc:
            _advance(delivery_id, driver_id)

        assert exc.value.reason == RejectionReason.TERMINAL
        after = current_domain.repository_for(Delivery).get(delivery_id)
        assert after.status == "delivered"
        assert after.updated_at == before.updated_at
        assert after._version == before._version
        assert len(notices) == 1  # only the snapshot sent on subscribe

    def test_foreign_driver_rejected(self):
        owner = _register_driver("Sam")
        other = _register_driver("Lee")
        delivery_id = _assigned_delivery(owner)

        with pytest.raises(TransitionRejected) as exc:
            _advance(delivery_id, other)

        assert exc.value.reason == RejectionReason.NOT_ASSIGNED_DRIVER
        assert _status(delivery_id) == "assigned"

    def test_duplicate_tap_is_detected(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)
        _advance(delivery_id, driver_id, "picked_up")

        with pytest.raises(TransitionRejected) as exc:
            _advance(delivery_id, driver_id, "picked_up")

        assert exc.value.reason == RejectionReason.ALREADY_APPLIED
        assert _status(delivery_id) == "picked_up"

    def test_one_delivery_in_transit_per_driver(self):
        driver_id = _register_driver()
        first = _assigned_delivery(driver_id)
        second = _assigned_delivery(driver_id)
        _advance(first, driver_id)
        _advance(first, driver_id)
        _advance(second, driver_id)

        with pytest.raises(TransitionRejected) as exc:
            _advance(second, driver_id)

        assert exc.value.reason == RejectionReason.DRIVER_BUSY
        assert _status(second) == "picked_up"

        _advance(first, driver_id)
        assert _advance(second, driver_id) == "in_transit"


class TestCancel:
    def test_operator_cancels_active_delivery(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)

        current_domain.process(CancelDelivery(delivery_id=delivery_id, reason="Address closed"), asynchronous=False)

        delivery = current_domain.repository_for(Delivery).get(delivery_id)
        assert delivery.status == "cancelled"
        assert delivery.cancellation_reason == "Address closed"
        assert delivery.cancelled_at is not None

    def test_driver_cannot_advance_cancelled(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)
        current_domain.process(CancelDelivery(delivery_id=delivery_id), asynchronous=False)

        with pytest.raises(TransitionRejected) as exc:
            _advance(delivery_id, driver_id)
        assert exc.value.reason == RejectionReason.TERMINAL


class TestConditionalWrite:
    def test_stale_copy_cannot_overwrite_newer_status(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)
        repo = current_domain.repository_for(Delivery)
        stale = repo.get(delivery_id)

        _advance(delivery_id, driver_id)

        stale.cancel("Operator working from an old screen")
        with pytest.raises(TransitionRejected) as exc:
            repo.save_transition(stale, DeliveryStatus.ASSIGNED)

        assert exc.value.reason == RejectionReason.STALE_STATUS
        assert exc.value.current_status == "picked_up"
        assert _status(delivery_id) == "picked_up"

    def test_matching_status_is_written(self):
        driver_id = _register_driver()
        delivery_id = _assigned_delivery(driver_id)
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(delivery_id)

        delivery.cancel()
        repo.save_transition(delivery, DeliveryStatus.ASSIGNED)

        assert _status(delivery_id) == "cancelled"

    def test_repository_is_the_custom_one(self):
        assert isinstance(current_domain.repository_for(Delivery), DeliveryRepository)


class TestConcurrentAdvance:
    def test_parallel_in_transit_requests_let_only_one_through(self, monkeypatch):
        driver_id = _register_driver()
        first = _assigned_delivery(driver_id)
        second = _assigned_delivery(driver_id)
        _advance(first, driver_id)
        _advance(second, driver_id)

        lookup = DeliveryRepository.in_transit_for_driver

        def slow_lookup(self, driver_id):
            found = lookup(self, driver_id)
            time.sleep(0.2)
            return found

        monkeypatch.setattr(DeliveryRepository, "in_transit_for_driver", slow_lookup)

        outcomes = []
        barrier = threading.Barrier(2)

        def request(delivery_id):
            with logistics.domain_context():
                barrier.wait()
                try:
                    outcomes.append(_advance(delivery_id, driver_id))
                except TransitionRejected as exc:
                    outcomes.append(exc.reason)

        threads = [threading.Thread(target=request, args=(delivery_id,)) for delivery_id in (first, second)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(outcomes) == 2
        assert outcomes.count("in_transit") == 1
        assert outcomes.count(RejectionReason.DRIVER_BUSY) == 1
        assert sorted([_status(first), _status(second)]) == ["in_transit", "picked_up"]
