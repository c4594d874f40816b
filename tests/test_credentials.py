"""Unit tests for auth/credentials.py and auth/store.py.

Covers:
- register stores a bcrypt hash, never the plaintext
- duplicate registration raises DuplicateUsername on both store backends
- authenticate succeeds iff the password matches; unknown user and wrong
  password raise the same InvalidCredentials
- malformed stored hashes fail closed
- passwords longer than bcrypt's 72-byte input are refused at registration
"""

import pytest

from auth.credentials import authenticate_user, hash_password, register_user, verify_password
from auth.models import User
from auth.store import MemoryUserStore, SQLUserStore, create_user_store
from core.errors import DuplicateUsername, InvalidCredentials, ValidationError


@pytest.fixture(params=["memory", "sql"])
def store(request):
    s = MemoryUserStore() if request.param == "memory" else SQLUserStore("sqlite:///:memory:")
    yield s
    s.close()


def test_register_returns_id_and_hashes(store):
    uid = register_user(store, "alice", "s3cret")
    user = store.get_by_id(uid)
    assert user.username == "alice"
    assert user.hashed_password != "s3cret"
    assert user.hashed_password.startswith("$2")
    assert user.created_at


def test_ids_are_distinct(store):
    assert register_user(store, "alice", "pw") != register_user(store, "bob", "pw")
    assert store.count_users() == 2


def test_duplicate_username_rejected(store):
    register_user(store, "alice", "first")
    with pytest.raises(DuplicateUsername):
        register_user(store, "alice", "second")
    # The original credentials still work.
    assert authenticate_user(store, "alice", "first").username == "alice"


def test_authenticate_matching_password(store):
    uid = register_user(store, "alice", "s3cret")
    assert authenticate_user(store, "alice", "s3cret").id == uid


def test_authenticate_wrong_password(store):
    register_user(store, "alice", "s3cret")
    with pytest.raises(InvalidCredentials):
        authenticate_user(store, "alice", "wrong")


def test_unknown_user_same_error_as_wrong_password(store):
    register_user(store, "alice", "s3cret")
    with pytest.raises(InvalidCredentials) as unknown:
        authenticate_user(store, "nobody", "s3cret")
    with pytest.raises(InvalidCredentials) as wrong:
        authenticate_user(store, "alice", "wrong")
    assert unknown.value.message == wrong.value.message


def test_usernames_are_case_sensitive(store):
    register_user(store, "alice", "pw")
    with pytest.raises(InvalidCredentials):
        authenticate_user(store, "Alice", "pw")


def test_verify_password_malformed_hash():
    assert verify_password("pw", "not-a-bcrypt-hash") is False


def test_verify_password_roundtrip():
    hashed = hash_password("pw")
    assert verify_password("pw", hashed)
    assert not verify_password("other", hashed)


def test_store_returns_copies():
    store = MemoryUserStore()
    uid = store.create_user(User(username="alice", hashed_password=hash_password("pw")))
    store.get_by_id(uid).username = "mallory"
    assert store.get_by_username("alice").id == uid


def test_factory_selects_backend():
    assert isinstance(create_user_store("memory", "ignored"), MemoryUserStore)
    sql = create_user_store("sql", "sqlite:///:memory:")
    assert isinstance(sql, SQLUserStore)
    assert sql.ping()
    sql.close()


def test_register_rejects_password_over_72_bytes(store):
    with pytest.raises(ValidationError) as exc:
        register_user(store, "long", "p" * 100)
    assert exc.value.detail[0]["loc"] == ["password"]
    assert store.count_users() == 0


def test_register_password_limit_counts_utf8_bytes(store):
    with pytest.raises(ValidationError):
        register_user(store, "accent", "é" * 40)
    uid = register_user(store, "edge", "p" * 72)
    assert authenticate_user(store, "edge", "p" * 72).id == uid
