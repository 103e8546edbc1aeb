"""Pydantic schemas for the HTTP API layer and the realtime channel."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_level(value: Any) -> Any:
    """Round numeric levels and pin them into the 0-100 range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return max(0, min(100, int(round(value))))


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SensorStatus(str, Enum):
    """Health reported by a bin's sensor package."""

    active = "active"
    warning = "warning"
    error = "error"
    low_battery = "low_battery"
    offline = "offline"


class Bin(CamelModel):
    """Full record for a monitored waste bin."""

    bin_id: int = Field(..., gt=0)
    location: str
    fill_level: int = Field(default=0, ge=0, le=100)
    battery_level: int = Field(default=100, ge=0, le=100)
    temperature: int = 20
    sensor_status: SensorStatus = SensorStatus.active
    capacity: int = Field(default=100, gt=0)
    last_emptied: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    @field_validator("fill_level", "battery_level", mode="before")
    @classmethod
    def _clamp_levels(cls, value: Any) -> Any:
        return clamp_level(value)


class BinCreate(CamelModel):
    """Payload accepted by ``POST /bins``."""

    bin_id: int = Field(..., gt=0, description="Unique, immutable bin identifier.")
    location: str = Field(..., description="Human readable placement of the bin.")
    capacity: int = Field(default=100, gt=0)


class BinUpdate(CamelModel):
    """Partial update accepted by ``PUT /bins/{bin_id}``; ``binId`` is ignored."""

    location: Optional[str] = None
    fill_level: Optional[int] = None
    battery_level: Optional[int] = None
    temperature: Optional[int] = None
    sensor_status: Optional[SensorStatus] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    last_emptied: Optional[datetime] = None

    @field_validator("fill_level", "battery_level", mode="before")
    @classmethod
    def _clamp_levels(cls, value: Any) -> Any:
        return clamp_level(value)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class BinResponse(CamelModel):
    message: str
    bin: Bin


class MessageResponse(CamelModel):
    message: str


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    uptime: float = Field(..., ge=0, description="Seconds since the service started.")


class AnalyticsSummary(CamelModel):
    """Approximate fleet summary for the analytics endpoint."""

    total_bins: int = Field(..., ge=0)
    average_fill_level: int = Field(..., ge=0, le=100)
    collections_today: int = Field(..., ge=0)
    system_efficiency: int = Field(..., ge=0, le=100)


class BinAddedEvent(CamelModel):
    type: Literal["bin_added"] = "bin_added"
    bin: Bin


class BinUpdatedEvent(CamelModel):
    type: Literal["bin_updated"] = "bin_updated"
    bin: Bin

    def changes(self) -> Dict[str, Any]:
        return self.bin.model_dump()


class BinDeletedEvent(CamelModel):
    type: Literal["bin_deleted"] = "bin_deleted"
    bin_id: int


class FillLevelUpdateEvent(CamelModel):
    type: Literal["fill_level_update"] = "fill_level_update"
    bin_id: int
    fill_level: int = Field(..., ge=0, le=100)

    @field_validator("fill_level", mode="before")
    @classmethod
    def _clamp_fill(cls, value: Any) -> Any:
        return clamp_level(value)

    def changes(self) -> Dict[str, Any]:
        return {"fill_level": self.fill_level}


class InitialDataEvent(CamelModel):
    type: Literal["initial_data"] = "initial_data"
    bins: List[Bin] = Field(default_factory=list)


ChangeEvent = Annotated[
    Union[
        BinAddedEvent,
        BinUpdatedEvent,
        BinDeletedEvent,
        FillLevelUpdateEvent,
        InitialDataEvent,
    ],
    Field(discriminator="type"),
]

_change_event_adapter: TypeAdapter[ChangeEvent] = TypeAdapter(ChangeEvent)


def parse_event(payload: Any) -> ChangeEvent:
    """Validate a decoded JSON payload into one of the change event models."""
    return _change_event_adapter.validate_python(payload)


def dump_event(event: ChangeEvent) -> Dict[str, Any]:
    return event.model_dump(mode="json", by_alias=True)


class UserRecord(CamelModel):
    """Stored account; ``password_hash`` never leaves the service."""

    username: str
    email: str
    phone_number: str
    role: str
    password_hash: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class UserSummary(CamelModel):
    username: str
    email: str
    role: str


class RegisterRequest(CamelModel):
    username: str
    email: str
    phone_number: str
    password: str
    role: str


class RegisterResponse(CamelModel):
    message: str
    user: UserSummary


class LoginRequest(CamelModel):
    username: str
    password: str


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserSummary
