"""
resources/schemas.py -- Payload validation for create/update operations.

Every create and update in resources/graph.py passes its raw payload through
validate_payload() first. Pydantic v2 does the shape and type checks; failures
are re-raised as core.errors.ValidationError carrying one {"loc", "msg"} entry
per problem. The offending input values are NOT echoed back.

Create models describe a complete record (required fields enforced, defaults
applied). Update models make every field optional; to_fields(partial=True)
returns only the keys the client actually sent, which is what gets merged onto
the stored record. Required fields may be omitted from an update but not set
to null.

Unknown keys are rejected (extra="forbid") rather than silently dropped.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Largest id a SQL INTEGER column (SQLite, PostgreSQL BIGINT) can hold.
MAX_RECORD_ID = 2**63 - 1

_Payload = TypeVar("_Payload", bound="Payload")


class TaskStatus(str, Enum):
    pending = "Pending"
    completed = "Completed"


class Payload(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_fields(self, partial: bool = False) -> dict[str, Any]:
        """Return field values keyed by domain attribute name.

        Datetimes are normalized to ISO 8601 strings and enums to their values,
        the forms the stores keep.
        """
        data = self.model_dump(exclude_unset=partial)
        return {k: _to_storable(v) for k, v in data.items()}


def _to_storable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _dedupe(values: list[int]) -> list[int]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[int] = set()
    result: list[int] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


RecordId = Annotated[int, Field(gt=0, le=MAX_RECORD_ID)]

# Ordered set of ids: duplicates are dropped after per-item validation.
_IdSet = Annotated[list[RecordId], AfterValidator(_dedupe)]


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------


class EventCreate(Payload):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[str] = Field(default=None, max_length=255)
    date: Optional[datetime] = None
    attendees: _IdSet = Field(default_factory=list)


class EventUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[str] = Field(default=None, max_length=255)
    date: Optional[datetime] = None
    attendees: Optional[_IdSet] = None

    @field_validator("name", "attendees")
    @classmethod
    def required_not_null(cls, value: Any) -> Any:
        return _not_null(value)


# ---------------------------------------------------------------------------
# Attendee
# ---------------------------------------------------------------------------


class AttendeeCreate(Payload):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)


class AttendeeUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: Optional[str]) -> str:
        return _not_null(value)


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------


class TaskCreate(Payload):
    name: str = Field(min_length=1, max_length=200)
    deadline: Optional[datetime] = None
    status: TaskStatus = TaskStatus.pending
    event: RecordId
    assigned_to: Optional[RecordId] = Field(default=None, alias="assignedTo")


class TaskUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    deadline: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    event: Optional[RecordId] = None
    assigned_to: Optional[RecordId] = Field(default=None, alias="assignedTo")

    @field_validator("name", "status", "event")
    @classmethod
    def required_not_null(cls, value: Any) -> Any:
        return _not_null(value)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def validate_payload(schema: type[_Payload], payload: Any) -> _Payload:
    """Validate a raw JSON payload against schema or raise ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError(detail=[{"loc": [], "msg": "Payload must be a JSON object."}])
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
        raise ValidationError(detail=errors) from exc
