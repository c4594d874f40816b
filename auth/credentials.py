"""
auth/credentials.py -- Password hashing, registration, and login verification.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). Bcrypt's cost factor makes
       brute force of low-entropy secrets expensive. bcrypt only reads the
       first 72 bytes of a password, and current releases raise ValueError
       past that, so register_user() rejects longer passwords with
       ValidationError. api/models.Credentials applies the same limit.

  Timing equalization: authenticate_user() always runs one bcrypt check, even
       when the username does not exist (against _DUMMY_HASH), so response time
       does not reveal whether an account exists.

  Both failure modes of authenticate_user() (unknown user, wrong password)
       raise the same InvalidCredentials with the same message.

Layer rule: no imports from api/, web/, or resources/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.models import User
from auth.store import UserStore
from core.errors import InvalidCredentials, ValidationError

logger = logging.getLogger("eventdesk.auth")

MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash, or a password over MAX_PASSWORD_BYTES
        return False


# Computed once at module load so the first failed login is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("eventdesk_timing_dummy")


def register_user(store: UserStore, username: str, password: str) -> int:
    """Create an account and return its id.

    Raises DuplicateUsername (from the store) if the username is taken.
    Raises ValidationError if the password is longer than MAX_PASSWORD_BYTES
    in UTF-8.
    Only the bcrypt hash reaches the store.
    """
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            detail=[{"loc": ["password"], "msg": f"Password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8."}],
        )
    user_id = store.create_user(User(username=username, hashed_password=hash_password(password)))
    logger.info("Registered user %r (id=%d)", username, user_id)
    return user_id


def authenticate_user(store: UserStore, username: str, password: str) -> User:
    """Return the User whose stored hash matches password.

    Raises InvalidCredentials when the username is unknown or the password
    is wrong. Never mutates the record.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        logger.info("Login failed: unknown username")
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed for user id=%s", user.id)
        raise InvalidCredentials()
    return user
