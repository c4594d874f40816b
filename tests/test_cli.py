"""Unit tests for the main.py admin commands (events, create-user)."""

import argparse
import json

import pytest

import main
from auth.credentials import authenticate_user
from auth.store import SQLUserStore
from core.config import Settings
from resources.graph import ResourceGraph
from resources.store import SQLResourceStore


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _use_settings(monkeypatch, **overrides):
    settings = Settings(_env_file=None, secret_key="k" * 32, **overrides)
    monkeypatch.setattr(main, "get_settings", lambda: settings)


def test_events_empty(monkeypatch, capsys):
    _use_settings(monkeypatch, store_backend="memory")
    assert main._events(argparse.Namespace(json=False)) == 0
    assert "No events." in capsys.readouterr().out


def test_events_lists_name_and_date(monkeypatch, capsys, db_url):
    store = SQLResourceStore(db_url)
    graph = ResourceGraph(store)
    ann = graph.create_attendee({"name": "Ann"})
    graph.create_event({"name": "Conf", "date": "2024-05-01T09:00:00", "attendees": [ann.id]})
    store.close()

    _use_settings(monkeypatch, store_backend="sql", database_url=db_url)
    assert main._events(argparse.Namespace(json=False)) == 0
    out = capsys.readouterr().out
    assert "Conf - 2024-05-01T09:00:00" in out

    assert main._events(argparse.Namespace(json=True)) == 0
    [event] = json.loads(capsys.readouterr().out)
    assert event["name"] == "Conf"
    assert event["attendees"] == ["Ann"]


def test_create_user(monkeypatch, capsys, db_url):
    _use_settings(monkeypatch, store_backend="sql", database_url=db_url)
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": "s3cret")
    assert main._create_user(argparse.Namespace(username="alice")) == 0
    assert "Created user 'alice'" in capsys.readouterr().out

    store = SQLUserStore(db_url)
    assert authenticate_user(store, "alice", "s3cret").username == "alice"
    store.close()

    assert main._create_user(argparse.Namespace(username="alice")) == 1
    assert "already exists" in capsys.readouterr().out


def test_create_user_password_mismatch(monkeypatch, capsys, db_url):
    _use_settings(monkeypatch, store_backend="sql", database_url=db_url)
    answers = iter(["one", "two"])
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
    assert main._create_user(argparse.Namespace(username="alice")) == 1
    assert "do not match" in capsys.readouterr().out


def test_create_user_refuses_memory_backend(monkeypatch, capsys):
    _use_settings(monkeypatch, store_backend="memory")
    assert main._create_user(argparse.Namespace(username="alice")) == 1
