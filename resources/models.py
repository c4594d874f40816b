"""
resources/models.py -- Domain dataclasses for events, attendees and tasks.

These are pure data containers with zero logic. Validation lives in
resources/schemas.py, persistence in resources/store.py, and reference
resolution ("populate") in resources/graph.py.

References are stored as plain integer ids. Nothing here guarantees the
referenced record still exists: deleting an Event or Attendee leaves the ids
in place (no cascade).
"""

from dataclasses import dataclass, field
from typing import Optional

TASK_PENDING = "Pending"
TASK_COMPLETED = "Completed"
TASK_STATUSES = (TASK_PENDING, TASK_COMPLETED)


@dataclass
class Attendee:
    name: str
    email: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Event:
    """A scheduled event.

    date is an ISO 8601 string (normalized by resources/schemas.py).
    attendees is an ordered list of unique Attendee ids.
    id is None before the record is written to the store.
    """

    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    attendees: list[int] = field(default_factory=list)
    id: Optional[int] = None


@dataclass
class Task:
    """A to-do item attached to an Event.

    event        -- id of the owning Event
    assigned_to  -- id of the responsible Attendee (serialized as "assignedTo")
    """

    name: str
    event: int
    deadline: Optional[str] = None
    status: str = TASK_PENDING  # "Pending" | "Completed"
    assigned_to: Optional[int] = None
    id: Optional[int] = None


@dataclass
class PopulatedEvent:
    """An Event with its attendee ids resolved to Attendee records.

    Ids that no longer resolve are left out of attendees; event.attendees
    still holds every stored id.
    """

    event: Event
    attendees: list[Attendee]


@dataclass
class PopulatedTask:
    """A Task with assigned_to resolved. assignee is None when unset or dangling."""

    task: Task
    assignee: Optional[Attendee]
