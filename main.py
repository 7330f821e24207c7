"""
AccountGate Entry Point.

Bootstraps the dependency graph via constructor injection, initialises the
SQLite schema, and runs one account-lifecycle command from the command
line.  Every subsystem is wired here; no module-level globals.

Usage::

    python main.py signup alice alice@example.com s3cret! s3cret!
    python main.py activate alice@example.com <token>
    python main.py login alice@example.com s3cret!
    python main.py whoami <session-token>
    python main.py forgot-password alice@example.com
    python main.py reset-password alice@example.com <token> n3wpass n3wpass
"""

from __future__ import annotations

import argparse
import atexit
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel

from accountgate.config import get_config
from accountgate.database import DatabaseManager
from accountgate.exceptions import SigningKeyMissing
from accountgate.logger import StructuredLogger, get_logger
from accountgate.schema import initialize_schema
from accountgate.services import ServiceContainer, create_services
from accountgate.services.email_service import EmailService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accountgate",
        description="Account signup, activation, login and password reset.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    signup = commands.add_parser("signup", help="register a new account")
    signup.add_argument("username")
    signup.add_argument("email")
    signup.add_argument("password")
    signup.add_argument("password_confirmation")

    activate = commands.add_parser("activate", help="activate an account from its emailed link")
    activate.add_argument("email")
    activate.add_argument("token")

    login = commands.add_parser("login", help="exchange credentials for a session token")
    login.add_argument("email")
    login.add_argument("password")

    commands.add_parser("logout", help="discard the current session token")

    whoami = commands.add_parser("whoami", help="decode a session token")
    whoami.add_argument("session_token")

    forgot = commands.add_parser("forgot-password", help="email a password reset link")
    forgot.add_argument("email")

    reset = commands.add_parser("reset-password", help="choose a new password from a reset link")
    reset.add_argument("email")
    reset.add_argument("token")
    reset.add_argument("password")
    reset.add_argument("password_confirmation")

    return parser


def dispatch(args: argparse.Namespace, services: ServiceContainer) -> BaseModel:
    """Run the command named by *args* and return its result model."""
    auth = services["auth_service"]

    if args.command == "signup":
        return auth.signup(args.username, args.email, args.password, args.password_confirmation)
    if args.command == "activate":
        return auth.activate_account(args.email, args.token)
    if args.command == "login":
        return auth.login(args.email, args.password)
    if args.command == "logout":
        return auth.logout()
    if args.command == "forgot-password":
        return auth.request_password_reset(args.email)
    if args.command == "reset-password":
        return auth.reset_password(
            args.email, args.token, args.password, args.password_confirmation,
        )
    if args.command == "whoami":
        claim = services["token_codec"].verify(args.session_token)
        if claim is None:
            return _Whoami(logged_in=False)
        return _Whoami(logged_in=True, account_id=claim.account_id,
                       username=claim.username, role=claim.role)
    raise ValueError(f"Unknown command: {args.command}")


class _Whoami(BaseModel):
    logged_in: bool
    account_id: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Application entry point: wire dependencies and run one command."""
    args = build_parser().parse_args(argv)

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()
    logger: StructuredLogger = get_logger("main")

    # ------------------------------------------------------------------
    # 2. Database + schema (idempotent)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        sqlite_path=Path(config.SQLITE_PATH),
        logger=get_logger("database"),
    )
    atexit.register(db.close)
    initialize_schema(db.sqlite, get_logger("schema"))

    # ------------------------------------------------------------------
    # 3. Services
    # ------------------------------------------------------------------
    try:
        services = create_services(db=db, config=config)
    except SigningKeyMissing as exc:
        logger.critical("Cannot start: %s. Set SECRET_KEY.", exc)
        return 2

    result = dispatch(args, services)
    print(result.model_dump_json(indent=2, exclude_none=True))

    notifier = services["notifier"]
    if isinstance(notifier, EmailService):
        notifier.flush(timeout=30)

    success = getattr(result, "success", getattr(result, "logged_in", True))
    logger.info("Command finished: %s", args.command, extra={"success": success})
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
