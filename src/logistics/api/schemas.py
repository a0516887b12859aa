"""Pydantic API schemas for the Logistics domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class CreateDeliveryRequest(BaseModel):
    customer_id: str
    customer_name: str
    customer_address: str
    customer_phone: str | None = None
    customer_latitude: float | None = Field(default=None, ge=-90, le=90)
    customer_longitude: float | None = Field(default=None, ge=-180, le=180)
    delivery_fee: int | None = Field(default=None, ge=0)
    notes: str | None = None


class AssignDeliveryRequest(BaseModel):
    driver_id: str


class AdvanceDeliveryRequest(BaseModel):
    target_status: str | None = None


class CancelDeliveryRequest(BaseModel):
    reason: str | None = None


class RegisterDriverRequest(BaseModel):
    name: str
    phone: str | None = None
    vehicle_number: str | None = None


class StopTrackingRequest(BaseModel):
    reason: str | None = None


class FixRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0)
    captured_at: datetime | None = None
    delivery_id: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class DeliveryIdResponse(BaseModel):
    delivery_id: str


class DriverIdResponse(BaseModel):
    driver_id: str


class StatusResponse(BaseModel):
    status: str


class AssignmentResponse(BaseModel):
    status: str
    driver_id: str


class DeliveryListResponse(BaseModel):
    scope: str
    counts: dict[str, int]
    deliveries: list[dict]


class CandidateResponse(BaseModel):
    driver_id: str
    name: str
    distance_km: float | None = None


class PositionResponse(BaseModel):
    latitude: float
    longitude: float
    accuracy: float | None = None
    eta_minutes: int | None = None
    recorded_at: datetime


class DriverResponse(BaseModel):
    driver_id: str
    name: str
    phone: str | None = None
    vehicle_number: str | None = None
    status: str
    is_online: bool
    is_tracking: bool
    latitude: float | None = None
    longitude: float | None = None
    last_seen: datetime | None = None
