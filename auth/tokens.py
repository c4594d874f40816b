"""
auth/tokens.py -- JWT issuing and verification with rotatable key material.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (username), user_id, iat and
       an absolute exp of exactly token_expire_seconds after issuance.

  Key material: a KeyRing built from Settings (SECRET_KEY plus
       PREVIOUS_SECRET_KEYS). New tokens are always signed with the current
       key. Verification tries the current key first, then each previous key,
       so rotating the key does not log everyone out at once.
       KeyRing.rotate() is the runtime rotation hook.

  Clock: expiry is checked against TokenService.clock instead of inside
       jose, so the whole verification is a pure function of
       (token, clock(), key material) and tests can move time forward.
       jose still checks the signature and claim types.

Layer rule: no imports from api/, web/, or resources/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import JWTError, jwt

from auth.models import Identity
from core.config import Settings, get_settings
from core.errors import InvalidToken, MissingToken

logger = logging.getLogger("eventdesk.auth")

_ALGORITHM = "HS256"
_MIN_KEY_LENGTH = 32

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


class KeyRing:
    """Current signing key plus the previous keys still accepted for verification."""

    def __init__(self, current: str, previous: Sequence[str] = ()) -> None:
        if len(current) < _MIN_KEY_LENGTH:
            raise ValueError("Signing key must be at least 32 characters.")
        self._current = current
        self._previous = [k for k in previous if k != current]
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyRing":
        return cls(settings.secret_key, settings.previous_secret_keys)

    @property
    def signing_key(self) -> str:
        return self._current

    @property
    def verification_keys(self) -> tuple[str, ...]:
        with self._lock:
            return (self._current, *self._previous)

    def rotate(self, new_key: str, keep_previous: int = 1) -> None:
        """Sign with new_key from now on; keep the last keep_previous keys for verification.

        keep_previous=0 revokes every token signed before the rotation.
        """
        if len(new_key) < _MIN_KEY_LENGTH:
            raise ValueError("Signing key must be at least 32 characters.")
        with self._lock:
            if new_key == self._current:
                return
            previous = [self._current, *(k for k in self._previous if k != new_key)]
            self._previous = previous[:keep_previous]
            self._current = new_key
        logger.info("Signing key rotated (%d previous key(s) still accepted)", len(self._previous))


# ---------------------------------------------------------------------------
# Issue / verify
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies identity tokens.

    Usage:
        tokens = TokenService(KeyRing(secret), expire_seconds=3600)
        token = tokens.issue(user_id=1, username="alice")
        identity = tokens.verify(token)
    """

    def __init__(self, keyring: KeyRing, expire_seconds: int = 3600, clock: Clock = utcnow) -> None:
        self.keyring = keyring
        self.expire_seconds = expire_seconds
        self.clock = clock

    def issue(self, user_id: int, username: str) -> str:
        """Encode a signed JWT for user_id expiring expire_seconds from now."""
        now = self.clock()
        payload = {
            "sub": username,
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self.keyring.signing_key, algorithm=_ALGORITHM)

    def verify(self, token: str | None) -> Identity:
        """Return the Identity a token encodes.

        Raises MissingToken if token is None or empty, InvalidToken if no
        accepted key verifies the signature, a required claim is missing or
        mistyped, or the token has expired.
        """
        if not token:
            raise MissingToken()

        payload = None
        for key in self.keyring.verification_keys:
            try:
                payload = jwt.decode(token, key, algorithms=[_ALGORITHM], options={"verify_exp": False})
                break
            except JWTError:
                continue
        if payload is None:
            raise InvalidToken()

        user_id = payload.get("user_id")
        username = payload.get("sub")
        exp = payload.get("exp")
        if not isinstance(user_id, int) or not isinstance(username, str) or not isinstance(exp, int):
            raise InvalidToken()
        if self.clock().timestamp() >= exp:
            raise InvalidToken("Token has expired.")

        return Identity(
            user_id=user_id,
            username=username,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


@lru_cache
def get_token_service() -> TokenService:
    """Return the process-wide TokenService built from Settings.

    In tests: construct TokenService directly with a fixed clock instead.
    """
    settings = get_settings()
    return TokenService(KeyRing.from_settings(settings), expire_seconds=settings.token_expire_seconds)
