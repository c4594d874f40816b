"""
auth/store.py -- Persistence layer for user credentials.

Pattern: Repository + Data Mapper (same as resources/store.py).
UserStore is the repository interface; SQLUserStore and MemoryUserStore are
the two backends. _row_to_user is the SQL mapper. Route code never touches
SQL directly.

Uniqueness: SQLUserStore relies on the UNIQUE constraint on username and
turns the IntegrityError into DuplicateUsername. MemoryUserStore checks under
its lock, which gives the same guarantee within one process.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, web/, or resources/.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.errors import DuplicateUsername

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository interface
# ---------------------------------------------------------------------------


class UserStore(ABC):
    """Repository for User records.

    Usage:
        store = SQLUserStore("sqlite:///eventdesk.db")
        user_id = store.create_user(User(username="alice", hashed_password=hash_password("pw")))
        user = store.get_by_username("alice")
        store.close()
    """

    @abstractmethod
    def create_user(self, user: User) -> int:
        """Insert a new user and return its id. Raises DuplicateUsername."""

    @abstractmethod
    def get_by_username(self, username: str) -> User | None:
        """Exact (case-sensitive) lookup. None if not found."""

    @abstractmethod
    def get_by_id(self, user_id: int) -> User | None: ...

    @abstractmethod
    def count_users(self) -> int: ...

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# SQLAlchemy Core backend
# ---------------------------------------------------------------------------


class SQLUserStore(UserStore):
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_user(self, user: User) -> int:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        hashed_password=user.hashed_password,
                        created_at=_now_iso(),
                    )
                )
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateUsername() from exc

    def get_by_username(self, username: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            self.count_users()
        except Exception:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class MemoryUserStore(UserStore):
    """Dict-backed store for tests and STORE_BACKEND=memory. Lost on restart."""

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create_user(self, user: User) -> int:
        with self._lock:
            if any(u.username == user.username for u in self._users.values()):
                raise DuplicateUsername()
            user_id = self._next_id
            self._next_id += 1
            self._users[user_id] = replace(user, id=user_id, created_at=_now_iso())
        return user_id

    def get_by_username(self, username: str) -> User | None:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return replace(user)
        return None

    def get_by_id(self, user_id: int) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user is not None else None

    def count_users(self) -> int:
        with self._lock:
            return len(self._users)


def create_user_store(backend: str, db_url: str) -> UserStore:
    """Build the UserStore for the configured backend ("sql" or "memory")."""
    if backend == "memory":
        return MemoryUserStore()
    return SQLUserStore(db_url)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
