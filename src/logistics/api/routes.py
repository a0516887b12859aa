"""FastAPI routes for the Logistics domain."""

import asyncio
import math

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from logistics.api.dependencies import build_actor, current_actor, require_role, require_self_or_operator
from logistics.api.schemas import (
    AdvanceDeliveryRequest,
    AssignDeliveryRequest,
    AssignmentResponse,
    CancelDeliveryRequest,
    CandidateResponse,
    CreateDeliveryRequest,
    DeliveryIdResponse,
    DeliveryListResponse,
    DriverIdResponse,
    DriverResponse,
    FixRequest,
    PositionResponse,
    RegisterDriverRequest,
    StatusResponse,
    StopTrackingRequest,
)
from logistics.consoles.console import STALE_WARNING
from logistics.consoles.markers import driver_markers
from logistics.consoles.projections import status_counts
from logistics.consoles.session import Actor, Role, scope_for
from logistics.delivery.assignment import AssignDelivery, AssignNearestDriver, rank_candidates
from logistics.delivery.cancellation import CancelDelivery
from logistics.delivery.creation import CreateDelivery
from logistics.delivery.delivery import Delivery
from logistics.delivery.progression import AdvanceDeliveryStatus
from logistics.domain import logistics
from logistics.driver.availability import ActivateDriver, DeactivateDriver, GoOffline, GoOnline
from logistics.driver.driver import Driver
from logistics.driver.registration import RegisterDriver
from logistics.driver.tracking import RecordDriverFix, StartTracking, StopTracking
from logistics.fanout.hub import get_hub
from logistics.fanout.queries import fetch_scope, to_snapshot
from logistics.projections.position_log import route_for

logger = structlog.get_logger(__name__)


def _visible_delivery(delivery_id: str, actor: Actor) -> Delivery:
    """Load a delivery the actor is allowed to see; anything else is a 404."""
    delivery = current_domain.repository_for(Delivery).get(delivery_id)
    if not scope_for(actor).matches(to_snapshot(delivery)):
        raise ObjectNotFoundError(f"Delivery `{delivery_id}` does not exist")
    return delivery


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@delivery_router.post("", status_code=201, response_model=DeliveryIdResponse)
async def create_delivery(body: CreateDeliveryRequest, actor: Actor = Depends(current_actor)) -> DeliveryIdResponse:
    """Create a pending delivery for one of the company's customers."""
    require_role(actor, Role.OPERATOR)
    command = CreateDelivery(
        company_id=actor.company_id,
        customer_id=body.customer_id,
        customer_name=body.customer_name,
        customer_address=body.customer_address,
        customer_phone=body.customer_phone,
        customer_latitude=body.customer_latitude,
        customer_longitude=body.customer_longitude,
        delivery_fee=body.delivery_fee,
        notes=body.notes,
        created_by=actor.id,
    )
    result = current_domain.process(command, asynchronous=False)
    return DeliveryIdResponse(delivery_id=result)


@delivery_router.get("", response_model=DeliveryListResponse)
async def list_deliveries(actor: Actor = Depends(current_actor)) -> DeliveryListResponse:
    """The current delivery set of the caller's scope."""
    scope = scope_for(actor)
    deliveries = fetch_scope(scope)
    return DeliveryListResponse(scope=str(scope), counts=status_counts(deliveries), deliveries=deliveries)


@delivery_router.get("/{delivery_id}")
async def get_delivery(delivery_id: str, actor: Actor = Depends(current_actor)) -> dict:
    return to_snapshot(_visible_delivery(delivery_id, actor))


@delivery_router.put("/{delivery_id}/assign", response_model=AssignmentResponse)
async def assign_delivery(
    delivery_id: str, body: AssignDeliveryRequest, actor: Actor = Depends(current_actor)
) -> AssignmentResponse:
    """Hand a pending delivery to an active, online driver."""
    require_role(actor, Role.OPERATOR)
    _visible_delivery(delivery_id, actor)
    command = AssignDelivery(delivery_id=delivery_id, driver_id=body.driver_id, assigned_by=actor.id)
    driver_id = current_domain.process(command, asynchronous=False)
    return AssignmentResponse(status="assigned", driver_id=driver_id)


@delivery_router.put("/{delivery_id}/assign-nearest", response_model=AssignmentResponse)
async def assign_nearest(delivery_id: str, actor: Actor = Depends(current_actor)) -> AssignmentResponse:
    """Assign the closest available driver."""
    require_role(actor, Role.OPERATOR)
    _visible_delivery(delivery_id, actor)
    command = AssignNearestDriver(delivery_id=delivery_id, assigned_by=actor.id)
    driver_id = current_domain.process(command, asynchronous=False)
    return AssignmentResponse(status="assigned", driver_id=driver_id)


@delivery_router.get("/{delivery_id}/candidates", response_model=list[CandidateResponse])
async def list_candidates(delivery_id: str, actor: Actor = Depends(current_actor)) -> list[CandidateResponse]:
    """Available drivers for a delivery, nearest first."""
    require_role(actor, Role.OPERATOR)
    delivery = _visible_delivery(delivery_id, actor)
    return [
        CandidateResponse(
            driver_id=str(driver.id),
            name=driver.name,
            distance_km=None if math.isinf(distance) else round(distance, 2),
        )
        for driver, distance in rank_candidates(str(delivery.company_id), delivery.customer_location)
    ]


@delivery_router.put("/{delivery_id}/advance", response_model=StatusResponse)
async def advance_delivery(
    delivery_id: str, body: AdvanceDeliveryRequest | None = None, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    """Move the delivery one step forward. Only the assigned driver may do this."""
    require_role(actor, Role.DRIVER)
    command = AdvanceDeliveryStatus(
        delivery_id=delivery_id,
        actor_id=actor.id,
        target_status=body.target_status if body else None,
    )
    new_status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=new_status)


@delivery_router.put("/{delivery_id}/cancel", response_model=StatusResponse)
async def cancel_delivery(
    delivery_id: str, body: CancelDeliveryRequest | None = None, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    require_role(actor, Role.OPERATOR)
    _visible_delivery(delivery_id, actor)
    command = CancelDelivery(
        delivery_id=delivery_id,
        reason=body.reason if body else None,
        cancelled_by=actor.id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


@delivery_router.get("/{delivery_id}/route", response_model=list[PositionResponse])
async def delivery_route(delivery_id: str, actor: Actor = Depends(current_actor)) -> list[PositionResponse]:
    """Recent driver positions for the delivery, oldest first."""
    _visible_delivery(delivery_id, actor)
    return [
        PositionResponse(
            latitude=entry.latitude,
            longitude=entry.longitude,
            accuracy=entry.accuracy,
            eta_minutes=entry.eta_minutes,
            recorded_at=entry.recorded_at,
        )
        for entry in route_for(delivery_id)
    ]


@delivery_router.websocket("/stream")
async def stream_deliveries(
    websocket: WebSocket,
    role: str = Query(),
    actor_id: str = Query(),
    company_id: str | None = Query(default=None),
):
    """Live scoped delivery set.

    Sends ``{"type": "snapshot", "deliveries": [...]}`` on connect and after
    every change inside the scope, and ``{"type": "warning", ...}`` when the
    scope could not be refreshed. The client may send ``"refresh"`` to retry.
    """
    try:
        actor = build_actor(actor_id, role, company_id)
    except HTTPException as exc:
        await websocket.close(code=1008, reason=str(exc.detail))
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(message: dict) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, message)

    with logistics.domain_context():
        subscription = get_hub().subscribe(
            scope_for(actor),
            lambda deliveries: push({"type": "snapshot", "deliveries": deliveries}),
            lambda error: push({"type": "warning", "message": STALE_WARNING}),
        )

    async def pump():
        while True:
            await websocket.send_json(await queue.get())

    async def listen():
        while True:
            message = await websocket.receive_text()
            if message.strip() == "refresh":
                with logistics.domain_context():
                    subscription.refresh()

    tasks = [asyncio.create_task(pump()), asyncio.create_task(listen())]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        subscription.close()

    for task in done:
        error = task.exception()
        if error is not None and not isinstance(error, WebSocketDisconnect):
            logger.warning("stream_closed_with_error", scope=str(subscription.scope), error=str(error))


# ---------------------------------------------------------------------------
# Driver Router
# ---------------------------------------------------------------------------
driver_router = APIRouter(prefix="/drivers", tags=["drivers"])


def _driver_response(driver: Driver) -> DriverResponse:
    return DriverResponse(
        driver_id=str(driver.id),
        name=driver.name,
        phone=driver.phone,
        vehicle_number=driver.vehicle_number,
        status=driver.status,
        is_online=bool(driver.is_online),
        is_tracking=bool(driver.is_tracking),
        latitude=driver.location.latitude if driver.location else None,
        longitude=driver.location.longitude if driver.location else None,
        last_seen=driver.last_seen,
    )


@driver_router.post("", status_code=201, response_model=DriverIdResponse)
async def register_driver(body: RegisterDriverRequest, actor: Actor = Depends(current_actor)) -> DriverIdResponse:
    require_role(actor, Role.OPERATOR)
    command = RegisterDriver(
        company_id=actor.company_id,
        name=body.name,
        phone=body.phone,
        vehicle_number=body.vehicle_number,
    )
    result = current_domain.process(command, asynchronous=False)
    return DriverIdResponse(driver_id=result)


@driver_router.get("", response_model=list[DriverResponse])
async def list_drivers(actor: Actor = Depends(current_actor)) -> list[DriverResponse]:
    require_role(actor, Role.OPERATOR)
    drivers = current_domain.repository_for(Driver).for_company(actor.company_id)
    return [_driver_response(driver) for driver in drivers]


@driver_router.get("/map")
async def driver_map(actor: Actor = Depends(current_actor)) -> list[dict]:
    """Positions of the company's drivers for the operator map."""
    require_role(actor, Role.OPERATOR)
    return driver_markers(current_domain.repository_for(Driver).for_company(actor.company_id))


@driver_router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(driver_id: str, actor: Actor = Depends(current_actor)) -> DriverResponse:
    require_self_or_operator(actor, driver_id)
    return _driver_response(current_domain.repository_for(Driver).get(driver_id))


@driver_router.put("/{driver_id}/online", response_model=StatusResponse)
async def go_online(driver_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    require_self_or_operator(actor, driver_id)
    current_domain.process(GoOnline(driver_id=driver_id), asynchronous=False)
    return StatusResponse(status="online")


@driver_router.put("/{driver_id}/offline", response_model=StatusResponse)
async def go_offline(driver_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    require_self_or_operator(actor, driver_id)
    current_domain.process(GoOffline(driver_id=driver_id), asynchronous=False)
    return StatusResponse(status="offline")


@driver_router.put("/{driver_id}/deactivate", response_model=StatusResponse)
async def deactivate_driver(driver_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    require_role(actor, Role.OPERATOR)
    current_domain.process(DeactivateDriver(driver_id=driver_id), asynchronous=False)
    return StatusResponse(status="inactive")


@driver_router.put("/{driver_id}/activate", response_model=StatusResponse)
async def activate_driver(driver_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    require_role(actor, Role.OPERATOR)
    current_domain.process(ActivateDriver(driver_id=driver_id), asynchronous=False)
    return StatusResponse(status="active")


@driver_router.put("/{driver_id}/tracking/start", response_model=StatusResponse)
async def start_tracking(driver_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    require_self_or_operator(actor, driver_id)
    current_domain.process(StartTracking(driver_id=driver_id), asynchronous=False)
    return StatusResponse(status="tracking")


@driver_router.put("/{driver_id}/tracking/stop", response_model=StatusResponse)
async def stop_tracking(
    driver_id: str, body: StopTrackingRequest | None = None, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    require_self_or_operator(actor, driver_id)
    command = StopTracking(driver_id=driver_id, reason=body.reason if body else None)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="stopped")


@driver_router.post("/{driver_id}/fixes", status_code=202, response_model=StatusResponse)
async def upload_fix(driver_id: str, body: FixRequest, actor: Actor = Depends(current_actor)) -> StatusResponse:
    """Accept one position fix from the driver's device."""
    require_role(actor, Role.DRIVER)
    require_self_or_operator(actor, driver_id)
    command = RecordDriverFix(
        driver_id=driver_id,
        latitude=body.latitude,
        longitude=body.longitude,
        accuracy=body.accuracy,
        captured_at=body.captured_at,
        delivery_id=body.delivery_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="recorded")
