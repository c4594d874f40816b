"""
resources/graph.py -- CRUD contracts over events, attendees and tasks.

ResourceGraph is the only writer of Event/Attendee/Task records. It sits
between the routes and a ResourceStore and owns the rules the store does not:

  Validation   Every create/update payload goes through resources/schemas.py.
               Bad shapes raise ValidationError before the store is touched.

  References   On write, Task.event, Task.assigned_to and Event.attendees must
               name existing records (ValidationError otherwise). After the
               fact nothing is maintained: deletes never cascade, so stored
               ids may dangle.

  Populate     Event listings resolve attendee ids into Attendee records and
               task listings resolve assigned_to. A dangling attendee id is
               left out of the populated list; a dangling assigned_to
               populates to None. Stored ids are never rewritten.

  Not found    get_* and update_* raise NotFound for an unknown id.
               delete_* is idempotent and never raises.

Updates are shallow merges: only the keys present in the payload change.
"""

import logging
from typing import Any, Optional

from core.errors import NotFound, ValidationError
from resources.models import Attendee, Event, PopulatedEvent, PopulatedTask, Task
from resources.schemas import (
    AttendeeCreate,
    AttendeeUpdate,
    EventCreate,
    EventUpdate,
    TaskCreate,
    TaskUpdate,
    validate_payload,
)
from resources.store import ResourceStore

logger = logging.getLogger("eventdesk.resources")


class ResourceGraph:
    def __init__(self, store: ResourceStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, payload: Any) -> Event:
        fields = validate_payload(EventCreate, payload).to_fields()
        self._check_attendees_exist(fields["attendees"])
        event_id = self.store.create_event(Event(**fields))
        logger.info("Created event id=%d", event_id)
        return self._require(self.store.get_event(event_id), "Event", event_id)

    def get_event(self, event_id: int) -> PopulatedEvent:
        event = self._require(self.store.get_event(event_id), "Event", event_id)
        return self._populate_events([event])[0]

    def list_events(self) -> list[PopulatedEvent]:
        return self._populate_events(self.store.list_events())

    def update_event(self, event_id: int, payload: Any) -> Event:
        fields = _partial(EventUpdate, payload)
        if "attendees" in fields:
            self._check_attendees_exist(fields["attendees"])
        if not self.store.update_event(event_id, **fields):
            raise NotFound(f"Event {event_id} not found.")
        return self._require(self.store.get_event(event_id), "Event", event_id)

    def delete_event(self, event_id: int) -> None:
        if self.store.delete_event(event_id):
            logger.info("Deleted event id=%d (tasks referencing it are kept)", event_id)

    # ------------------------------------------------------------------
    # Attendees
    # ------------------------------------------------------------------

    def create_attendee(self, payload: Any) -> Attendee:
        fields = validate_payload(AttendeeCreate, payload).to_fields()
        attendee_id = self.store.create_attendee(Attendee(**fields))
        logger.info("Created attendee id=%d", attendee_id)
        return self._require(self.store.get_attendee(attendee_id), "Attendee", attendee_id)

    def get_attendee(self, attendee_id: int) -> Attendee:
        return self._require(self.store.get_attendee(attendee_id), "Attendee", attendee_id)

    def list_attendees(self) -> list[Attendee]:
        return self.store.list_attendees()

    def update_attendee(self, attendee_id: int, payload: Any) -> Attendee:
        fields = _partial(AttendeeUpdate, payload)
        if not self.store.update_attendee(attendee_id, **fields):
            raise NotFound(f"Attendee {attendee_id} not found.")
        return self._require(self.store.get_attendee(attendee_id), "Attendee", attendee_id)

    def delete_attendee(self, attendee_id: int) -> None:
        if self.store.delete_attendee(attendee_id):
            logger.info("Deleted attendee id=%d (references to it are kept)", attendee_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, payload: Any) -> Task:
        fields = validate_payload(TaskCreate, payload).to_fields()
        self._check_task_references(fields)
        task_id = self.store.create_task(Task(**fields))
        logger.info("Created task id=%d for event id=%d", task_id, fields["event"])
        return self._require(self.store.get_task(task_id), "Task", task_id)

    def get_task(self, task_id: int) -> PopulatedTask:
        task = self._require(self.store.get_task(task_id), "Task", task_id)
        return self._populate_tasks([task])[0]

    def list_tasks(self, event_id: Optional[int] = None) -> list[PopulatedTask]:
        """All tasks, or the tasks of one event, with assigned_to populated.

        An event_id that names no event (or a deleted one) is not an error:
        tasks still pointing at it are returned.
        """
        return self._populate_tasks(self.store.list_tasks(event_id=event_id))

    def update_task(self, task_id: int, payload: Any) -> Task:
        fields = _partial(TaskUpdate, payload)
        self._check_task_references(fields)
        if not self.store.update_task(task_id, **fields):
            raise NotFound(f"Task {task_id} not found.")
        return self._require(self.store.get_task(task_id), "Task", task_id)

    def delete_task(self, task_id: int) -> None:
        if self.store.delete_task(task_id):
            logger.info("Deleted task id=%d", task_id)

    # ------------------------------------------------------------------
    # Reference checks
    # ------------------------------------------------------------------

    def _check_attendees_exist(self, attendee_ids: list[int]) -> None:
        found = self.store.get_attendees(attendee_ids)
        missing = [i for i in attendee_ids if i not in found]
        if missing:
            raise ValidationError(
                detail=[{"loc": ["attendees"], "msg": f"Unknown attendee id(s): {missing}"}],
            )

    def _check_task_references(self, fields: dict) -> None:
        errors = []
        event_id = fields.get("event")
        if event_id is not None and self.store.get_event(event_id) is None:
            errors.append({"loc": ["event"], "msg": f"Unknown event id: {event_id}"})
        assignee_id = fields.get("assigned_to")
        if assignee_id is not None and self.store.get_attendee(assignee_id) is None:
            errors.append({"loc": ["assignedTo"], "msg": f"Unknown attendee id: {assignee_id}"})
        if errors:
            raise ValidationError(detail=errors)

    # ------------------------------------------------------------------
    # Populate
    # ------------------------------------------------------------------

    def _populate_events(self, events: list[Event]) -> list[PopulatedEvent]:
        wanted = sorted({i for e in events for i in e.attendees})
        known = self.store.get_attendees(wanted)
        return [PopulatedEvent(event=e, attendees=[known[i] for i in e.attendees if i in known]) for e in events]

    def _populate_tasks(self, tasks: list[Task]) -> list[PopulatedTask]:
        wanted = sorted({t.assigned_to for t in tasks if t.assigned_to is not None})
        known = self.store.get_attendees(wanted)
        return [PopulatedTask(task=t, assignee=known.get(t.assigned_to)) for t in tasks]

    @staticmethod
    def _require(record, kind: str, record_id: int):
        if record is None:
            raise NotFound(f"{kind} {record_id} not found.")
        return record


def _partial(schema, payload: Any) -> dict:
    """Validate an update payload and return only the fields the client sent."""
    fields = validate_payload(schema, payload).to_fields(partial=True)
    if not fields:
        raise ValidationError("No fields to update.")
    return fields
