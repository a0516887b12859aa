"""Integration tests for the consoles and role switching."""

from logistics.consoles.console import (
    STALE_WARNING,
    ConsoleSession,
    CustomerConsole,
    DriverConsole,
    OperatorConsole,
)
from logistics.consoles.session import Actor, Role
from logistics.delivery.assignment import AssignDelivery
from logistics.delivery.creation import CreateDelivery
from logistics.delivery.progression import AdvanceDeliveryStatus
from logistics.driver.availability import GoOnline
from logistics.driver.registration import RegisterDriver
from logistics.driver.tracking import RecordDriverFix, StartTracking
from logistics.fanout.hub import SubscriptionHub, get_hub
from protean import current_domain

OPERATOR = Actor("op-1", Role.OPERATOR, "co-1")


def _create(customer_id="cust-1", address="12 Harbour Road"):
    return current_domain.process(
        CreateDelivery(
            company_id="co-1",
            customer_id=customer_id,
            customer_name="Ana Ruiz",
            customer_address=address,
            customer_latitude=40.0,
            customer_longitude=-3.0,
        ),
        asynchronous=False,
    )


def _online_driver():
    driver_id = current_domain.process(RegisterDriver(company_id="co-1", name="Sam"), asynchronous=False)
    current_domain.process(GoOnline(driver_id=driver_id), asynchronous=False)
    current_domain.process(StartTracking(driver_id=driver_id), asynchronous=False)
    return driver_id


def _advance(delivery_id, driver_id, times=1):
    for _ in range(times):
        current_domain.process(AdvanceDeliveryStatus(delivery_id=delivery_id, actor_id=driver_id), asynchronous=False)


def _fix(driver_id, latitude):
    current_domain.process(RecordDriverFix(driver_id=driver_id, latitude=latitude, longitude=-3.0), asynchronous=False)


class TestOperatorConsole:
    def test_counts_and_rows(self):
        _create(address="Apartment 4B, 1200 Long Boulevard of the Very Long Names, Springfield")
        console = ConsoleSession().sign_in(OPERATOR)
        _create()

        view = console.view()

        assert view["counts"]["pending"] == 2
        assert len(view["rows"]) == 2
        assert any(row["address"].endswith("...") for row in view["rows"])
        assert view["warning"] is None

    def test_marker_moves_then_disappears(self):
        driver_id = _online_driver()
        delivery_id = _create()
        current_domain.process(AssignDelivery(delivery_id=delivery_id, driver_id=driver_id), asynchronous=False)
        _advance(delivery_id, driver_id, 2)
        console = ConsoleSession().sign_in(OPERATOR)

        _fix(driver_id, 40.2)
        assert console.last_map_changes.added == [delivery_id]
        marker = console.map.markers[delivery_id]

        _fix(driver_id, 40.1)
        assert console.last_map_changes.moved == [delivery_id]
        assert console.map.markers[delivery_id] is marker
        assert marker.latitude == 40.1

        _advance(delivery_id, driver_id)
        assert console.last_map_changes.removed == [delivery_id]
        assert console.map.markers == {}


class TestDriverConsole:
    def test_active_and_todays_totals(self):
        driver_id = _online_driver()
        done = _create()
        active = _create()
        for delivery_id in (done, active):
            current_domain.process(AssignDelivery(delivery_id=delivery_id, driver_id=driver_id), asynchronous=False)
        console = ConsoleSession().sign_in(Actor(driver_id, Role.DRIVER, "co-1"))

        _advance(done, driver_id, 3)

        view = console.view()
        assert [d["id"] for d in view["active"]] == [active]
        assert view["completed_today"] == 1
        assert view["earnings_today"] == 500


class TestCustomerConsole:
    def test_eta_shown_while_in_transit(self):
        driver_id = _online_driver()
        delivery_id = _create(customer_id="cust-9")
        current_domain.process(AssignDelivery(delivery_id=delivery_id, driver_id=driver_id), asynchronous=False)
        console = ConsoleSession().sign_in(Actor("cust-9", Role.CUSTOMER))
        assert console.view()["orders"][0]["eta"] is None

        _advance(delivery_id, driver_id, 2)
        _fix(driver_id, 40.1)

        order = console.view()["orders"][0]
        assert order["status"] == "in_transit"
        assert order["eta"] == "22 min"


class TestSessions:
    def test_role_switch_closes_previous_subscription(self):
        session = ConsoleSession()
        first = session.sign_in(OPERATOR)
        assert isinstance(first, OperatorConsole)

        second = session.switch_role(Actor("drv-1", Role.DRIVER, "co-1"))

        assert isinstance(second, DriverConsole)
        assert not first.is_open
        assert len(get_hub().subscriptions()) == 1

    def test_sign_out_leaves_no_subscriptions(self):
        session = ConsoleSession()
        session.sign_in(Actor("cust-1", Role.CUSTOMER))
        session.sign_in(Actor("cust-1", Role.CUSTOMER))
        session.sign_out()
        assert get_hub().subscriptions() == []
        assert session.console is None

    def test_closed_console_stops_updating(self):
        console = ConsoleSession().sign_in(OPERATOR)
        updates = console.updates
        console.close()
        _create()
        assert console.updates == updates

    def test_degraded_console_shows_warning_and_last_data(self):
        state = {"fail": False}

        def fetch(scope):
            if state["fail"]:
                raise ConnectionError("offline")
            return [{"id": "d1", "status": "pending", "customer_name": "A", "customer_address": "B", "driver_name": None}]

        hub = SubscriptionHub(fetch=fetch)
        console = CustomerConsole(Actor("cust-1", Role.CUSTOMER), hub)
        console.open()

        state["fail"] = True
        hub.notify({"customer_id": "cust-1"})

        assert console.warning == STALE_WARNING
        assert console.deliveries[0]["id"] == "d1"

        state["fail"] = False
        console.retry()
        assert console.warning is None
