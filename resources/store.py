"""
resources/store.py -- Persistence layer for events, attendees and tasks.

Pattern: Repository + Data Mapper. ResourceStore is the repository interface
(one method group per entity). Two interchangeable backends implement it:

  MemoryResourceStore -- dicts keyed by id, one lock around every call.
                         Used by STORE_BACKEND=memory and by unit tests.
  SQLResourceStore    -- SQLAlchemy Core tables. SQLite by default; any
                         SQLAlchemy URL works (PostgreSQL is a connection
                         string change, not a rewrite).

Contract shared by both backends:
  - create_* assigns a new positive integer id and returns it. Ids are never
    reused, even after the highest one is deleted.
  - list_* returns records ordered by id.
  - update_*(id, **fields) overwrites only the given fields and returns False
    when the id does not exist.
  - delete_* returns False when the id did not exist; it is never an error.
  - Deletes do not cascade. Removing an Event leaves its Tasks in place;
    removing an Attendee leaves its id in event attendee lists and in
    Task.assigned_to. The only rows removed with an Event are its own
    attendee-list rows.

Each SQL write runs in one engine.begin() transaction. There are no
multi-call transactions, so a concurrent update + delete on the same id may
leave the update reporting not-found.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = create_resource_store("sql", "sqlite:///eventdesk.db")
    event_id = store.create_event(Event(name="Conf"))
    store.update_event(event_id, location="Hall A")
    store.close()
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event as sa_event,
    select,
    text,
)
from sqlalchemy.engine import Engine

from resources.models import TASK_PENDING, Attendee, Event, Task

# ---------------------------------------------------------------------------
# Repository interface
# ---------------------------------------------------------------------------


class ResourceStore(ABC):
    # Events

    @abstractmethod
    def create_event(self, event: Event) -> int: ...

    @abstractmethod
    def get_event(self, event_id: int) -> Optional[Event]: ...

    @abstractmethod
    def list_events(self) -> list[Event]: ...

    @abstractmethod
    def update_event(self, event_id: int, **fields: Any) -> bool: ...

    @abstractmethod
    def delete_event(self, event_id: int) -> bool: ...

    # Attendees

    @abstractmethod
    def create_attendee(self, attendee: Attendee) -> int: ...

    @abstractmethod
    def get_attendee(self, attendee_id: int) -> Optional[Attendee]: ...

    @abstractmethod
    def get_attendees(self, attendee_ids: list[int]) -> dict[int, Attendee]:
        """Return the attendees that exist among attendee_ids, keyed by id."""

    @abstractmethod
    def list_attendees(self) -> list[Attendee]: ...

    @abstractmethod
    def update_attendee(self, attendee_id: int, **fields: Any) -> bool: ...

    @abstractmethod
    def delete_attendee(self, attendee_id: int) -> bool: ...

    # Tasks

    @abstractmethod
    def create_task(self, task: Task) -> int: ...

    @abstractmethod
    def get_task(self, task_id: int) -> Optional[Task]: ...

    @abstractmethod
    def list_tasks(self, event_id: Optional[int] = None) -> list[Task]:
        """Return all tasks, or only those whose event is event_id."""

    @abstractmethod
    def update_task(self, task_id: int, **fields: Any) -> bool: ...

    @abstractmethod
    def delete_task(self, task_id: int) -> bool: ...

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class MemoryResourceStore(ResourceStore):
    """Dict-backed store. Records are copied on the way in and out, so callers
    never hold a reference into the store's own state."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: dict[int, Event] = {}
        self._attendees: dict[int, Attendee] = {}
        self._tasks: dict[int, Task] = {}
        self._next_ids = {"event": 1, "attendee": 1, "task": 1}

    def _insert(self, kind: str, table: dict, record) -> int:
        with self._lock:
            record_id = self._next_ids[kind]
            self._next_ids[kind] += 1
            table[record_id] = replace(copy.deepcopy(record), id=record_id)
        return record_id

    def _get(self, table: dict, record_id: int):
        with self._lock:
            record = table.get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def _list(self, table: dict) -> list:
        with self._lock:
            return [copy.deepcopy(table[k]) for k in sorted(table)]

    def _update(self, table: dict, record_id: int, fields: dict) -> bool:
        with self._lock:
            existing = table.get(record_id)
            if existing is None:
                return False
            table[record_id] = replace(existing, **copy.deepcopy(fields))
        return True

    def _delete(self, table: dict, record_id: int) -> bool:
        with self._lock:
            return table.pop(record_id, None) is not None

    # Events

    def create_event(self, event: Event) -> int:
        return self._insert("event", self._events, event)

    def get_event(self, event_id: int) -> Optional[Event]:
        return self._get(self._events, event_id)

    def list_events(self) -> list[Event]:
        return self._list(self._events)

    def update_event(self, event_id: int, **fields: Any) -> bool:
        return self._update(self._events, event_id, fields)

    def delete_event(self, event_id: int) -> bool:
        return self._delete(self._events, event_id)

    # Attendees

    def create_attendee(self, attendee: Attendee) -> int:
        return self._insert("attendee", self._attendees, attendee)

    def get_attendee(self, attendee_id: int) -> Optional[Attendee]:
        return self._get(self._attendees, attendee_id)

    def get_attendees(self, attendee_ids: list[int]) -> dict[int, Attendee]:
        with self._lock:
            return {i: copy.deepcopy(self._attendees[i]) for i in attendee_ids if i in self._attendees}

    def list_attendees(self) -> list[Attendee]:
        return self._list(self._attendees)

    def update_attendee(self, attendee_id: int, **fields: Any) -> bool:
        return self._update(self._attendees, attendee_id, fields)

    def delete_attendee(self, attendee_id: int) -> bool:
        return self._delete(self._attendees, attendee_id)

    # Tasks

    def create_task(self, task: Task) -> int:
        return self._insert("task", self._tasks, task)

    def get_task(self, task_id: int) -> Optional[Task]:
        return self._get(self._tasks, task_id)

    def list_tasks(self, event_id: Optional[int] = None) -> list[Task]:
        tasks = self._list(self._tasks)
        if event_id is None:
            return tasks
        return [t for t in tasks if t.event == event_id]

    def update_task(self, task_id: int, **fields: Any) -> bool:
        return self._update(self._tasks, task_id, fields)

    def delete_task(self, task_id: int) -> bool:
        return self._delete(self._tasks, task_id)


# ---------------------------------------------------------------------------
# SQL schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_events = Table(
    "events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("location", String(255)),
    Column("date", String(40)),  # ISO 8601
    sqlite_autoincrement=True,
)

# Ordered attendee list of an event. No foreign keys: ids may dangle.
_event_attendees = Table(
    "event_attendees",
    metadata,
    Column("event_id", Integer, nullable=False, index=True),
    Column("attendee_id", Integer, nullable=False),
    Column("position", Integer, nullable=False),
    UniqueConstraint("event_id", "attendee_id", name="uq_event_attendee"),
)

_attendees = Table(
    "attendees",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("email", String(320)),
    sqlite_autoincrement=True,
)

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("deadline", String(40)),  # ISO 8601
    Column("status", String(20), nullable=False, server_default=TASK_PENDING),
    Column("event_id", Integer, nullable=False, index=True),
    Column("assigned_to", Integer),
    sqlite_autoincrement=True,
)

# Domain attribute -> column name, where they differ.
_TASK_COLUMNS = {"event": "event_id"}


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (per connection)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# SQLAlchemy Core backend
# ---------------------------------------------------------------------------


class SQLResourceStore(ResourceStore):
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            sa_event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, event: Event) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                _events.insert().values(
                    name=event.name,
                    description=event.description,
                    location=event.location,
                    date=event.date,
                )
            )
            event_id = result.inserted_primary_key[0]
            self._write_attendee_list(conn, event_id, event.attendees)
        return event_id

    def get_event(self, event_id: int) -> Optional[Event]:
        with self.engine.connect() as conn:
            row = conn.execute(_events.select().where(_events.c.id == event_id)).fetchone()
            if row is None:
                return None
            links = conn.execute(
                select(_event_attendees.c.attendee_id)
                .where(_event_attendees.c.event_id == event_id)
                .order_by(_event_attendees.c.position)
            ).fetchall()
        return _row_to_event(row, [r.attendee_id for r in links])

    def list_events(self) -> list[Event]:
        with self.engine.connect() as conn:
            rows = conn.execute(_events.select().order_by(_events.c.id)).fetchall()
            links = conn.execute(
                select(_event_attendees).order_by(_event_attendees.c.event_id, _event_attendees.c.position)
            ).fetchall()
        by_event: dict[int, list[int]] = {}
        for link in links:
            by_event.setdefault(link.event_id, []).append(link.attendee_id)
        return [_row_to_event(row, by_event.get(row.id, [])) for row in rows]

    def update_event(self, event_id: int, **fields: Any) -> bool:
        attendees = fields.pop("attendees", None)
        with self.engine.begin() as conn:
            exists = conn.execute(select(_events.c.id).where(_events.c.id == event_id)).fetchone()
            if exists is None:
                return False
            if fields:
                conn.execute(_events.update().where(_events.c.id == event_id).values(**fields))
            if attendees is not None:
                conn.execute(_event_attendees.delete().where(_event_attendees.c.event_id == event_id))
                self._write_attendee_list(conn, event_id, attendees)
        return True

    def delete_event(self, event_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_events.delete().where(_events.c.id == event_id))
            conn.execute(_event_attendees.delete().where(_event_attendees.c.event_id == event_id))
        return result.rowcount > 0

    @staticmethod
    def _write_attendee_list(conn, event_id: int, attendee_ids: list[int]) -> None:
        if not attendee_ids:
            return
        conn.execute(
            _event_attendees.insert(),
            [
                {"event_id": event_id, "attendee_id": attendee_id, "position": position}
                for position, attendee_id in enumerate(attendee_ids)
            ],
        )

    # ------------------------------------------------------------------
    # Attendees
    # ------------------------------------------------------------------

    def create_attendee(self, attendee: Attendee) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(_attendees.insert().values(name=attendee.name, email=attendee.email))
        return result.inserted_primary_key[0]

    def get_attendee(self, attendee_id: int) -> Optional[Attendee]:
        with self.engine.connect() as conn:
            row = conn.execute(_attendees.select().where(_attendees.c.id == attendee_id)).fetchone()
        return _row_to_attendee(row) if row is not None else None

    def get_attendees(self, attendee_ids: list[int]) -> dict[int, Attendee]:
        if not attendee_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(_attendees.select().where(_attendees.c.id.in_(attendee_ids))).fetchall()
        return {row.id: _row_to_attendee(row) for row in rows}

    def list_attendees(self) -> list[Attendee]:
        with self.engine.connect() as conn:
            rows = conn.execute(_attendees.select().order_by(_attendees.c.id)).fetchall()
        return [_row_to_attendee(r) for r in rows]

    def update_attendee(self, attendee_id: int, **fields: Any) -> bool:
        return self._update_row(_attendees, attendee_id, fields)

    def delete_attendee(self, attendee_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_attendees.delete().where(_attendees.c.id == attendee_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    name=task.name,
                    deadline=task.deadline,
                    status=task.status,
                    event_id=task.event,
                    assigned_to=task.assigned_to,
                )
            )
        return result.inserted_primary_key[0]

    def get_task(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(self, event_id: Optional[int] = None) -> list[Task]:
        query = _tasks.select().order_by(_tasks.c.id)
        if event_id is not None:
            query = query.where(_tasks.c.event_id == event_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: int, **fields: Any) -> bool:
        values = {_TASK_COLUMNS.get(k, k): v for k, v in fields.items()}
        return self._update_row(_tasks, task_id, values)

    def delete_task(self, task_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def _update_row(self, table: Table, record_id: int, values: dict) -> bool:
        with self.engine.begin() as conn:
            if not values:
                exists = conn.execute(select(table.c.id).where(table.c.id == record_id)).fetchone()
                return exists is not None
            result = conn.execute(table.update().where(table.c.id == record_id).values(**values))
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


def create_resource_store(backend: str, db_url: str) -> ResourceStore:
    """Build the ResourceStore for the configured backend ("sql" or "memory")."""
    if backend == "memory":
        return MemoryResourceStore()
    return SQLResourceStore(db_url)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_event(row, attendee_ids: list[int]) -> Event:
    return Event(
        id=row.id,
        name=row.name,
        description=row.description,
        location=row.location,
        date=row.date,
        attendees=attendee_ids,
    )


def _row_to_attendee(row) -> Attendee:
    return Attendee(id=row.id, name=row.name, email=row.email)


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        name=row.name,
        deadline=row.deadline,
        status=row.status,
        event=row.event_id,
        assigned_to=row.assigned_to,
    )
