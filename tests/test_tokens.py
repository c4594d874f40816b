"""Unit tests for auth/tokens.py -- token issuing, verification and key rotation.

Covers:
- a token verifies right after issuance and carries the user's identity
- expiry at exactly expire_seconds, checked against the injected clock
- missing token -> MissingToken; tampered, foreign-key or "Bearer " token -> InvalidToken
- KeyRing rotation keeps previous keys valid for verification only
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import KeyRing, TokenService
from conftest import TEST_KEY, make_token_service
from core.errors import InvalidToken, MissingToken

OTHER_KEY = "another-signing-key-abcdefghijklmnopqrstuvwxyz"
START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tokens(clock: FakeClock) -> TokenService:
    return make_token_service(clock=clock)


class TestIssueVerify:
    def test_fresh_token_verifies(self, tokens):
        identity = tokens.verify(tokens.issue(7, "alice"))
        assert identity.user_id == 7
        assert identity.username == "alice"
        assert identity.expires_at == START + timedelta(hours=1)

    def test_claims(self, tokens):
        claims = jwt.get_unverified_claims(tokens.issue(7, "alice"))
        assert claims["sub"] == "alice"
        assert claims["user_id"] == 7
        assert claims["exp"] - claims["iat"] == 3600

    def test_valid_just_before_expiry(self, tokens, clock):
        token = tokens.issue(1, "alice")
        clock.advance(seconds=3599)
        assert tokens.verify(token).user_id == 1

    def test_rejected_at_one_hour(self, tokens, clock):
        token = tokens.issue(1, "alice")
        clock.advance(hours=1)
        with pytest.raises(InvalidToken, match="expired"):
            tokens.verify(token)

    def test_expiry_follows_setting(self, clock):
        short = TokenService(KeyRing(TEST_KEY), expire_seconds=60, clock=clock)
        token = short.issue(1, "alice")
        clock.advance(seconds=61)
        with pytest.raises(InvalidToken):
            short.verify(token)


class TestRejections:
    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, tokens, token):
        with pytest.raises(MissingToken):
            tokens.verify(token)

    def test_garbage(self, tokens):
        with pytest.raises(InvalidToken):
            tokens.verify("not-a-jwt")

    def test_bearer_prefix_is_not_stripped(self, tokens):
        with pytest.raises(InvalidToken):
            tokens.verify(f"Bearer {tokens.issue(1, 'alice')}")

    def test_signed_with_other_key(self, tokens, clock):
        foreign = make_token_service(clock=clock, key=OTHER_KEY).issue(1, "alice")
        with pytest.raises(InvalidToken):
            tokens.verify(foreign)

    def test_tampered_payload(self, tokens):
        header, _payload, signature = tokens.issue(1, "alice").split(".")
        forged_payload = jwt.encode({"sub": "mallory", "user_id": 2, "exp": 9999999999}, OTHER_KEY).split(".")[1]
        with pytest.raises(InvalidToken):
            tokens.verify(f"{header}.{forged_payload}.{signature}")

    def test_missing_claims(self, tokens):
        token = jwt.encode({"sub": "alice"}, TEST_KEY, algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(token)


class TestKeyRotation:
    def test_previous_key_still_verifies(self, tokens):
        old = tokens.issue(1, "alice")
        tokens.keyring.rotate(OTHER_KEY)
        assert tokens.verify(old).username == "alice"

    def test_new_tokens_use_new_key(self, tokens, clock):
        tokens.keyring.rotate(OTHER_KEY)
        fresh = tokens.issue(1, "alice")
        assert make_token_service(clock=clock, key=OTHER_KEY).verify(fresh).user_id == 1
        with pytest.raises(InvalidToken):
            make_token_service(clock=clock, key=TEST_KEY).verify(fresh)

    def test_rotate_without_keeping_revokes(self, tokens):
        old = tokens.issue(1, "alice")
        tokens.keyring.rotate(OTHER_KEY, keep_previous=0)
        with pytest.raises(InvalidToken):
            tokens.verify(old)

    def test_short_keys_rejected(self):
        with pytest.raises(ValueError):
            KeyRing("short")
        with pytest.raises(ValueError):
            KeyRing(TEST_KEY).rotate("short")

    def test_keyring_from_previous_list(self, clock):
        old = make_token_service(clock=clock, key=OTHER_KEY).issue(3, "bob")
        ring = KeyRing(TEST_KEY, previous=[OTHER_KEY])
        assert TokenService(ring, clock=clock).verify(old).user_id == 3
        assert ring.verification_keys == (TEST_KEY, OTHER_KEY)
