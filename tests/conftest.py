"""
Shared fixtures.

Every test gets its own SQLite file under ``tmp_path``, a uniquely named
logger (so handlers never leak between tests), the minimum bcrypt cost,
a notifier that records instead of sending, and a controllable clock.
"""

from __future__ import annotations

import io
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterator, Mapping

import pytest

from accountgate.config import AppConfig
from accountgate.database import DatabaseManager
from accountgate.logger import StructuredLogger
from accountgate.repositories.account_repository import AccountRepository
from accountgate.schema import initialize_schema
from accountgate.services import ServiceContainer, create_services
from accountgate.services.auth_service import AuthService
from accountgate.services.users import UserService

TEST_SECRET = "test-signing-key-0123456789-abcdefghijklmnop"


@dataclass
class SentEmail:
    template_name: str
    recipient: str
    context: dict[str, str]


@dataclass
class RecordingNotifier:
    """Notifier double: keeps every send() call in order."""

    sent: list[SentEmail] = field(default_factory=list)

    def send(self, template_name: str, recipient: str, context: Mapping[str, str]) -> None:
        self.sent.append(SentEmail(template_name, recipient, dict(context)))

    def last(self, template_name: str) -> SentEmail:
        matches = [s for s in self.sent if s.template_name == template_name]
        assert matches, f"no '{template_name}' email was sent"
        return matches[-1]


class FakeClock:
    """Callable clock.  Starts three hours in the past so that tokens
    issued after advancing it by two hours still have a past ``iat``."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc) - timedelta(hours=3)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        _env_file=None,
        SECRET_KEY=TEST_SECRET,
        BCRYPT_ROUNDS=4,
        MAIL_ENABLED=False,
        APP_BASE_URL="https://accounts.example.test",
        SQLITE_PATH=str(tmp_path / "accounts.db"),
        LOG_FILE=str(tmp_path / "accountgate.log"),
    )


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(tmp_path, log_stream) -> StructuredLogger:
    return StructuredLogger(
        name=f"accountgate-test-{uuid.uuid4().hex}",
        stream=log_stream,
        log_file=str(tmp_path / "test.log"),
    )


@pytest.fixture
def db(config, logger) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(sqlite_path=config.SQLITE_PATH, logger=logger)
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def repo(db, logger) -> AccountRepository:
    return AccountRepository(db=db, logger=logger)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def services(db, config, logger, notifier, clock) -> ServiceContainer:
    return create_services(db=db, config=config, logger=logger, notifier=notifier, clock=clock)


@pytest.fixture
def auth(services) -> AuthService:
    return services["auth_service"]


@pytest.fixture
def users(services) -> UserService:
    return services["user_service"]


@pytest.fixture
def signup(auth, notifier):
    """Register an account and return ``(result, activation_token)``."""

    def _signup(
        username: str = "alice",
        email: str = "alice@example.com",
        password: str = "secret1",
    ):
        result = auth.signup(username, email, password, password)
        assert result.success, result
        return result, notifier.last("activate-account").context["token"]

    return _signup


@pytest.fixture
def active_account(signup, auth):
    """Register and activate an account; return its activation result."""

    def _active(
        username: str = "alice",
        email: str = "alice@example.com",
        password: str = "secret1",
    ):
        _, token = signup(username, email, password)
        result = auth.activate_account(email, token)
        assert result.success, result
        return result

    return _active
