"""
API request and response models for EventDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in resources/models.py
and auth/models.py, which own the internal domain representation. Route
handlers map between the two with the from_domain() factories below.

Resource create/update payloads are NOT modelled here: they are validated by
resources/schemas.py inside ResourceGraph so the same rules apply to every
caller, not just HTTP.

JSON uses camelCase for assignedTo; Python attributes stay snake_case.
FastAPI serializes response models by alias.
"""

from datetime import datetime
from typing import Annotated, Any, Optional

from fastapi import Path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.credentials import MAX_PASSWORD_BYTES
from resources.models import Attendee, Event, PopulatedEvent, PopulatedTask, Task
from resources.schemas import MAX_RECORD_ID

# Path parameter for a record id. Out-of-range ids are a 400, not a store error.
RecordIdPath = Annotated[int, Path(gt=0, le=MAX_RECORD_ID)]

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Request body for POST /api/register and POST /api/login.

    Passwords are capped at MAX_PASSWORD_BYTES of UTF-8, the most bcrypt
    will hash, so an over-long password is a 400 validation_error on both
    routes.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        return value


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    expires_in: int


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    expires_at: datetime


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class AttendeeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: Optional[str] = None

    @classmethod
    def from_domain(cls, attendee: Attendee) -> "AttendeeResponse":
        return cls(id=attendee.id, name=attendee.name, email=attendee.email)


class EventResponse(BaseModel):
    """An Event as stored: attendees are ids."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    attendees: list[int]

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            name=event.name,
            description=event.description,
            location=event.location,
            date=event.date,
            attendees=list(event.attendees),
        )


class PopulatedEventResponse(BaseModel):
    """An Event with attendees resolved to full records."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    attendees: list[AttendeeResponse]

    @classmethod
    def from_domain(cls, populated: PopulatedEvent) -> "PopulatedEventResponse":
        event = populated.event
        return cls(
            id=event.id,
            name=event.name,
            description=event.description,
            location=event.location,
            date=event.date,
            attendees=[AttendeeResponse.from_domain(a) for a in populated.attendees],
        )


class TaskResponse(BaseModel):
    """A Task as stored: event and assignedTo are ids."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    deadline: Optional[str] = None
    status: str
    event: int
    assigned_to: Optional[int] = Field(default=None, alias="assignedTo")

    @classmethod
    def from_domain(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            name=task.name,
            deadline=task.deadline,
            status=task.status,
            event=task.event,
            assigned_to=task.assigned_to,
        )


class PopulatedTaskResponse(BaseModel):
    """A Task with assignedTo resolved. null when unassigned or the attendee is gone."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    deadline: Optional[str] = None
    status: str
    event: int
    assigned_to: Optional[AttendeeResponse] = Field(default=None, alias="assignedTo")

    @classmethod
    def from_domain(cls, populated: PopulatedTask) -> "PopulatedTaskResponse":
        task = populated.task
        return cls(
            id=task.id,
            name=task.name,
            deadline=task.deadline,
            status=task.status,
            event=task.event,
            assigned_to=AttendeeResponse.from_domain(populated.assignee) if populated.assignee else None,
        )


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str]
