"""Application tests for delivery creation via domain.process()."""

import pytest
from logistics.delivery.creation import CreateDelivery
from logistics.delivery.delivery import Delivery
from protean import current_domain
from protean.exceptions import ValidationError


def _create(**overrides):
    defaults = {
        "company_id": "co-1",
        "customer_id": "cust-1",
        "customer_name": "Ana Ruiz",
        "customer_address": "12 Harbour Road",
    }
    defaults.update(overrides)
    return current_domain.process(CreateDelivery(**defaults), asynchronous=False)


class TestCreateDelivery:
    def test_returns_id_of_pending_delivery(self):
        delivery_id = _create()
        delivery = current_domain.repository_for(Delivery).get(delivery_id)
        assert delivery.status == "pending"
        assert delivery.driver_id is None

    def test_destination_from_coordinates(self):
        delivery_id = _create(customer_latitude=40.4, customer_longitude=-3.7)
        delivery = current_domain.repository_for(Delivery).get(delivery_id)
        assert delivery.customer_location.latitude == 40.4
        assert delivery.customer_location.longitude == -3.7

    def test_no_destination_without_both_coordinates(self):
        delivery_id = _create(customer_latitude=40.4)
        delivery = current_domain.repository_for(Delivery).get(delivery_id)
        assert delivery.customer_location is None

    def test_fee_and_notes(self):
        delivery_id = _create(delivery_fee=800, notes="Ring twice", created_by="op-1")
        delivery = current_domain.repository_for(Delivery).get(delivery_id)
        assert delivery.delivery_fee == 800
        assert delivery.notes == "Ring twice"
        assert delivery.created_by == "op-1"

    def test_missing_address_writes_nothing(self):
        with pytest.raises(ValidationError):
            _create(customer_address="")
        assert current_domain.repository_for(Delivery).find_by_scope("company_id", "co-1") == []

    def test_scope_query_newest_first(self):
        first = _create(customer_name="First")
        second = _create(customer_name="Second")
        ids = [str(d.id) for d in current_domain.repository_for(Delivery).find_by_scope("company_id", "co-1")]
        assert ids == [second, first]
