"""Shared BDD fixtures and step definitions for the Logistics domain."""

import pytest
from logistics.delivery.assignment import AssignDelivery
from logistics.delivery.creation import CreateDelivery
from logistics.delivery.delivery import Delivery
from logistics.delivery.progression import AdvanceDeliveryStatus
from logistics.driver.availability import GoOnline
from logistics.driver.registration import RegisterDriver
from logistics.driver.tracking import StartTracking
from protean import current_domain
from pytest_bdd import given, parsers, then

COMPANY = "co-bdd"


@pytest.fixture()
def ctx():
    """Names, ids and outcomes shared between the steps of one scenario."""
    return {"drivers": {}, "delivery_id": None, "rejection": None}


def create_delivery(customer_id="cust-1", latitude=40.0, longitude=-3.0):
    return current_domain.process(
        CreateDelivery(
            company_id=COMPANY,
            customer_id=customer_id,
            customer_name="Ana Ruiz",
            customer_address="12 Harbour Road",
            customer_latitude=latitude,
            customer_longitude=longitude,
        ),
        asynchronous=False,
    )


def load_delivery(ctx) -> Delivery:
    return current_domain.repository_for(Delivery).get(ctx["delivery_id"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an online driver "{name}"'))
def online_driver(ctx, name):
    driver_id = current_domain.process(RegisterDriver(company_id=COMPANY, name=name), asynchronous=False)
    current_domain.process(GoOnline(driver_id=driver_id), asynchronous=False)
    ctx["drivers"][name] = driver_id


@given(parsers.cfparse('a pending delivery for customer "{customer_id}"'))
def pending_delivery(ctx, customer_id):
    ctx["delivery_id"] = create_delivery(customer_id)


@given(parsers.cfparse('a delivery assigned to "{name}"'))
def assigned_delivery(ctx, name):
    ctx["delivery_id"] = create_delivery()
    current_domain.process(
        AssignDelivery(delivery_id=ctx["delivery_id"], driver_id=ctx["drivers"][name]),
        asynchronous=False,
    )


@given(parsers.cfparse('a delivery in transit with "{name}"'))
def in_transit_delivery(ctx, name):
    assigned_delivery(ctx, name)
    for _ in range(2):
        current_domain.process(
            AdvanceDeliveryStatus(delivery_id=ctx["delivery_id"], actor_id=ctx["drivers"][name]),
            asynchronous=False,
        )


@given(parsers.cfparse('"{name}" is tracking'))
def driver_is_tracking(ctx, name):
    current_domain.process(StartTracking(driver_id=ctx["drivers"][name]), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the delivery status is "{status}"'))
def delivery_status_is(ctx, status):
    assert load_delivery(ctx).status == status


@then(parsers.cfparse('the delivery is assigned to "{name}"'))
def delivery_assigned_to(ctx, name):
    delivery = load_delivery(ctx)
    assert delivery.driver_id == ctx["drivers"][name]
    assert delivery.driver_name == name


@then(parsers.cfparse('the change is rejected with reason "{reason}"'))
def change_rejected(ctx, reason):
    assert ctx["rejection"] is not None, "Expected the change to be rejected"
    assert ctx["rejection"].reason.value == reason
