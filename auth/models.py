"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in resources/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, web/, or resources/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    hashed_password is a bcrypt hash; the plaintext is never stored.
    The record is immutable after registration.
    """

    username: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The caller resolved from a verified token.

    Built purely from token claims -- the access gate does not hit the store.
    """

    user_id: int
    username: str
    expires_at: datetime
