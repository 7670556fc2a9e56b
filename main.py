#!/usr/bin/env python3
"""
wuzzlmoasta -- a single protected page behind a username/password login.

Usage:
  python main.py serve
  python main.py serve --resources-dir ./resources --port 9000
  python main.py add-user alice --display-name "Alice Example"
  python main.py list-users

Environment variables (see core/config.py for the full list):
  USERS_DB_URL          SQLAlchemy URL of the credential database.
  SESSION_TTL_SECONDS   Session lifetime; 0 (default) keeps sessions until logout.
  SECURE_COOKIES        Set to true when serving over HTTPS.
"""

import argparse
import os
import sys
from getpass import getpass
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import CredentialStore
from auth.tokens import hash_password
from core.config import get_settings

# bcrypt looks at the first 72 bytes only and bcrypt 4.x rejects longer input.
_MAX_PASSWORD_BYTES = 72


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    if args.resources_dir:
        resources = Path(args.resources_dir).resolve()
        if not resources.is_dir():
            print(f"  [!] folder `{args.resources_dir}` does not exist", file=sys.stderr)
            return 2
        # Settings are read from the environment, including in uvicorn reload workers.
        os.environ["RESOURCES_DIR"] = str(resources)
        get_settings.cache_clear()

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _add_user(args: argparse.Namespace) -> int:
    username = args.username.strip()
    if not username:
        print("  [!] Username must not be empty.", file=sys.stderr)
        return 2

    password = getpass("Password: ")
    if password != getpass("Repeat password: "):
        print("  [!] Passwords do not match.", file=sys.stderr)
        return 1
    if not password:
        print("  [!] Password must not be empty.", file=sys.stderr)
        return 1
    if len(password.encode("utf-8")) > _MAX_PASSWORD_BYTES:
        print(f"  [!] Password must be at most {_MAX_PASSWORD_BYTES} bytes.", file=sys.stderr)
        return 1

    store = CredentialStore(db_url=get_settings().users_db_url)
    try:
        store.create_user(
            User(
                username=username,
                display_name=(args.display_name or "").strip(),
                hashed_password=hash_password(password),
            )
        )
    except IntegrityError:
        print(f"  [!] User '{username}' already exists.", file=sys.stderr)
        return 1
    finally:
        store.close()

    print(f"  User '{username}' created.")
    return 0


def _list_users(args: argparse.Namespace) -> int:
    store = CredentialStore(db_url=get_settings().users_db_url)
    try:
        users = store.list_users()
    finally:
        store.close()

    if not users:
        print("  No users provisioned.")
        return 0
    for user in users:
        state = "" if user.is_active else "  (inactive)"
        name = f"  {user.display_name}" if user.display_name else ""
        print(f"  {user.username}{name}{state}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="wuzzlmoasta",
        description="A protected page behind a cookie-session login.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py add-user alice
  python main.py serve
  python main.py serve --resources-dir ./resources
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the web server")
    serve.add_argument(
        "--resources-dir",
        metavar="DIR",
        help="Load views from DIR/views and static files from DIR/static instead of the packaged ones",
    )
    serve.add_argument("--host", default=None, help="Listen address (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT or 8080)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    add_user = sub.add_parser("add-user", help="Provision a login (password is prompted)")
    add_user.add_argument("username")
    add_user.add_argument("--display-name", default="", help="Name shown on the protected page")
    add_user.set_defaults(func=_add_user)

    list_users = sub.add_parser("list-users", help="Show provisioned logins")
    list_users.set_defaults(func=_list_users)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
