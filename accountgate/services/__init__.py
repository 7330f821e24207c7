"""
Business Logic Services Package.

The ``create_services()`` factory wires the repository, the crypto
primitives and every service together, returning a typed dict that the
request layer can consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from accountgate.config import AppConfig
from accountgate.database import DatabaseManager
from accountgate.logger import StructuredLogger, get_logger
from accountgate.repositories.account_repository import AccountRepository
from accountgate.services.auth_service import AuthService
from accountgate.services.email_service import EmailService, Notifier
from accountgate.services.password_hasher import PasswordHasher
from accountgate.services.token_codec import Clock, TokenCodec, utcnow
from accountgate.services.token_generator import TokenGenerator
from accountgate.services.users import UserService


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    account_repository: AccountRepository
    password_hasher: PasswordHasher
    token_generator: TokenGenerator
    token_codec: TokenCodec
    notifier: Notifier
    auth_service: AuthService
    user_service: UserService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    logger: Optional[StructuredLogger] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Clock] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    entry point calls it once at startup.

    Args:
        db: Initialised DatabaseManager with the schema in place.
        config: Application configuration, shared read-only.
        logger: Logger for every component; built from config when omitted.
        notifier: Email sender; an SMTP ``EmailService`` when omitted.
        clock: Source of "now" for token timestamps; UTC wall clock when omitted.
    """
    logger = logger or get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    account_repo = AccountRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf components (no service dependencies)
    # ------------------------------------------------------------------
    hasher = PasswordHasher(rounds=config.BCRYPT_ROUNDS)
    token_generator = TokenGenerator(length=config.TOKEN_LENGTH)
    clock = clock or utcnow
    codec = TokenCodec.from_config(config, logger, clock=clock)
    resolved_notifier: Notifier = notifier or EmailService(config=config, logger=logger)

    # ------------------------------------------------------------------
    # 3. Orchestration services
    # ------------------------------------------------------------------
    auth_service = AuthService(
        repo=account_repo,
        hasher=hasher,
        token_generator=token_generator,
        codec=codec,
        notifier=resolved_notifier,
        config=config,
        logger=logger,
        clock=clock,
    )
    user_service = UserService(
        repo=account_repo,
        hasher=hasher,
        config=config,
        logger=logger,
    )

    return ServiceContainer(
        account_repository=account_repo,
        password_hasher=hasher,
        token_generator=token_generator,
        token_codec=codec,
        notifier=resolved_notifier,
        auth_service=auth_service,
        user_service=user_service,
    )
