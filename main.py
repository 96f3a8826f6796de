#!/usr/bin/env python3
"""
DesignHub auth -- command-line front end for the local credential and
session manager. Stands in for the mobile screens: every command goes through
AuthService exactly as the app does.

Usage:
  python main.py register you@example.com --role designer --name "Ana Lima"
  python main.py login you@example.com --role designer
  python main.py whoami
  python main.py logout
  python main.py reset-password you@example.com

Passwords are prompted for unless --password is given.

Environment variables:
  STORAGE_URL     SQLAlchemy SQLite URL of the store (default: designhub_store.db)
  BCRYPT_ROUNDS   bcrypt cost factor for new hashes (default: 12)
  LOG_LEVEL       Logging level (default: INFO)
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import Optional

from auth.models import ROLES
from auth.service import AuthService, build_auth_service, home_route
from core.config import get_settings
from kvstore.base import StorageError
from kvstore.sqlite import SQLiteStore

logger = logging.getLogger("designhub.cli")


def _password(args: argparse.Namespace) -> str:
    if args.password is not None:
        return args.password
    return getpass.getpass("Password: ")


async def _run(auth: AuthService, args: argparse.Namespace) -> int:
    if args.command == "register":
        result = await auth.register(
            args.email, _password(args), args.role, full_name=args.name, phone=args.phone
        )
        print(f"  {result.message}" if result.success else f"  [!] {result.message}")
        return 0 if result.success else 1

    if args.command == "login":
        result = await auth.login(args.email, _password(args), args.role)
        if not result.success:
            print(f"  [!] {result.message}")
            return 1
        print(f"  Logged in as {result.user.email} ({result.user.role}). Home: {home_route(result.user.role)}")
        return 0

    if args.command == "logout":
        if not await auth.logout():
            print("  [!] Could not clear the session. Please try again.")
            return 1
        print("  Logged out.")
        return 0

    if args.command == "whoami":
        user = await auth.current_user()
        if user is None:
            print("  Not logged in.")
            return 1
        print(f"  {user.email} ({user.role})")
        if user.full_name:
            print(f"  Name:       {user.full_name}")
        if user.last_login:
            print(f"  Last login: {user.last_login}")
        return 0

    if args.command == "reset-password":
        result = await auth.request_password_reset(args.email)
        print(f"  {result.message}")
        return 0

    raise ValueError(f"unhandled command {args.command!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="designhub-auth",
        description="Local account registration and session management.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--store",
        metavar="URL",
        default=None,
        help="SQLite URL of the key-value store (overrides STORAGE_URL)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_register = sub.add_parser("register", help="Create a new account")
    p_register.add_argument("email")
    p_register.add_argument("--role", choices=ROLES, required=True)
    p_register.add_argument("--password", default=None, help="Password (prompted if omitted)")
    p_register.add_argument("--name", default=None, help="Full name")
    p_register.add_argument("--phone", default=None, help="Phone number")

    p_login = sub.add_parser("login", help="Log in and start a session")
    p_login.add_argument("email")
    p_login.add_argument("--role", choices=ROLES, required=True)
    p_login.add_argument("--password", default=None, help="Password (prompted if omitted)")

    sub.add_parser("logout", help="End the current session")
    sub.add_parser("whoami", help="Show the current session")

    p_reset = sub.add_parser("reset-password", help="Request a password reset")
    p_reset.add_argument("email")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        store = SQLiteStore(args.store or settings.storage_url)
    except StorageError as exc:
        logger.error("Store unavailable: %s", exc)
        print("  [!] An error occurred. Please try again.")
        return 1

    try:
        return asyncio.run(_run(build_auth_service(store), args))
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
