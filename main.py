#!/usr/bin/env python3
"""
Audit Monitor -- administrative command line.

Usage:
  python main.py init-db
  python main.py create-admin --email admin@example.com --name "Site Admin"
  python main.py create-admin --email admin@example.com --name "Site Admin" --password s3cretpass

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the database (default: sqlite file in the project root)
  SECRET_KEY    Required unless DEBUG=true; not used by these commands but
                validated on settings load like every other entry point.

Serving the API is done with uvicorn, not through this script:
  uvicorn asgi:app --reload
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.policy import ADMIN
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError
from tracker.store import TrackerStore

_MIN_PASSWORD = 6


def init_db(db_url: str) -> None:
    """Create every table and seed the built-in roles and settings row."""
    UserStore(db_url).close()
    TrackerStore(db_url).close()
    print(f"  Database ready: {db_url}")


def create_admin(db_url: str, email: str, name: str, password: Optional[str]) -> int:
    """Create an Admin user. Returns the process exit code."""
    if not password:
        password = getpass.getpass("  Password: ")
        if password != getpass.getpass("  Confirm password: "):
            print("  [!] Passwords do not match.")
            return 1
    if len(password) < _MIN_PASSWORD:
        print(f"  [!] Password must be at least {_MIN_PASSWORD} characters.")
        return 1

    store = UserStore(db_url)
    try:
        role = store.get_role_by_name(ADMIN)
        if role is None:
            print("  [!] Admin role is missing. Run 'init-db' first.")
            return 1
        user = store.create_user(name=name, email=email, password=password, role_id=role.id)
    except AppError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()

    print(f"  Created admin user {user.email} (id={user.id}).")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="audit-monitor",
        description="Administrative commands for the Audit Monitor API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init-db
  python main.py create-admin --email admin@example.com --name "Site Admin"
  DATABASE_URL=sqlite:////srv/audit.db python main.py init-db
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    subparsers.add_parser("init-db", help="Create tables and seed built-in roles")

    admin_parser = subparsers.add_parser("create-admin", help="Create a user with the Admin role")
    admin_parser.add_argument("--email", required=True, help="Login email of the new admin")
    admin_parser.add_argument("--name", required=True, help="Display name of the new admin")
    admin_parser.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted; avoid passing it on shared machines)",
    )

    args = parser.parse_args()
    db_url = get_settings().database_url

    if args.command == "init-db":
        init_db(db_url)
    elif args.command == "create-admin":
        sys.exit(create_admin(db_url, args.email, args.name, args.password))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
