#!/usr/bin/env python3
"""
EventDesk -- Events, attendees and tasks behind a token-authenticated API.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 5000 --reload
  python main.py create-user alice
  python main.py events
  python main.py events --json

Environment variables (see core/config.py for the full list):
  SECRET_KEY     Token signing key, at least 32 characters. Required unless DEBUG=true.
  DEBUG          Set to true to auto-generate a throwaway SECRET_KEY.
  STORE_BACKEND  "sql" (default) or "memory".
  DATABASE_URL   SQLAlchemy URL for the sql backend (default sqlite:///eventdesk.db).
"""

import argparse
import getpass
import json
import sys

from core.config import get_settings
from core.errors import EventDeskError


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    from auth.credentials import register_user
    from auth.store import create_user_store

    settings = get_settings()
    if settings.store_backend == "memory":
        print("  [!] STORE_BACKEND=memory: a user created here is gone when this command exits.")
        return 1

    password = getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1
    if password != getpass.getpass("Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1

    store = create_user_store(settings.store_backend, settings.database_url)
    try:
        user_id = register_user(store, args.username, password)
    except EventDeskError as e:
        print(f"  [!] {e.message}")
        return 1
    finally:
        store.close()
    print(f"  Created user '{args.username}' (id={user_id}).")
    return 0


def _events(args: argparse.Namespace) -> int:
    from resources.graph import ResourceGraph
    from resources.store import create_resource_store

    settings = get_settings()
    store = create_resource_store(settings.store_backend, settings.database_url)
    try:
        events = ResourceGraph(store).list_events()
    finally:
        store.close()

    if args.json:
        print(
            json.dumps(
                [
                    {
                        "id": p.event.id,
                        "name": p.event.name,
                        "date": p.event.date,
                        "location": p.event.location,
                        "attendees": [a.name for a in p.attendees],
                    }
                    for p in events
                ],
                indent=2,
            )
        )
        return 0

    if not events:
        print("  No events.")
        return 0
    for p in events:
        who = f" ({len(p.attendees)} attendee(s))" if p.attendees else ""
        print(f"  [{p.event.id}] {p.event.name} - {p.event.date or 'no date'}{who}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="eventdesk",
        description="Event management API server and admin tools.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  DEBUG=true STORE_BACKEND=memory python main.py serve
  python main.py create-user alice
  python main.py events --json
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API and front-end with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=5000, help="Port (default: 5000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    serve.set_defaults(func=_serve)

    create_user = sub.add_parser("create-user", help="Register an account from the terminal")
    create_user.add_argument("username", help="Username for the new account")
    create_user.set_defaults(func=_create_user)

    events = sub.add_parser("events", help="Print all events with their attendees")
    events.add_argument("--json", action="store_true", help="Output structured JSON")
    events.set_defaults(func=_events)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
