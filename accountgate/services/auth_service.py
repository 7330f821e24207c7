"""
Authentication Service.

Single orchestrator for the account lifecycle: signup, activation, login,
logout, password reset request and password reset.

Sits between the request layer and the repository / crypto primitives so
that request handlers stay thin form adapters.

All methods return typed ``AuthResult`` models; the caller never inspects
raw exceptions for expected outcomes.  ``RepositoryError`` is the only
exception that escapes, and it means the store itself failed.

Account states::

    PENDING --activate_account(email, token)--> ACTIVE

Login is refused while PENDING.  Activation and password reset both end
with a freshly issued session token (auto-login).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from accountgate.config import AppConfig
from accountgate.exceptions import DuplicateEmailError
from accountgate.logger import StructuredLogger
from accountgate.models.account import Account, AccountSummary
from accountgate.models.auth_models import (
    MSG_ACTIVATED,
    MSG_ACTIVATION_FAILED,
    MSG_ACTIVATION_MISSING,
    MSG_BAD_CREDENTIALS,
    MSG_EMAIL_NOT_FOUND,
    MSG_LOGGED_IN,
    MSG_LOGGED_OUT,
    MSG_NOT_ACTIVATED,
    MSG_RESET_DONE,
    MSG_RESET_EXPIRED,
    MSG_RESET_INVALID,
    MSG_RESET_SENT,
    MSG_SIGNUP_OK,
    AuthResult,
    FieldError,
)
from accountgate.models.enums import AccountState, AuthErrorCode
from accountgate.models.forms import PasswordResetForm, SignupForm
from accountgate.repositories.account_repository import AccountRepository, normalize_email
from accountgate.services.base_service import BaseService
from accountgate.services.email_service import (
    TEMPLATE_ACTIVATE_ACCOUNT,
    TEMPLATE_RESET_PASSWORD,
    Notifier,
)
from accountgate.services.password_hasher import PasswordHasher
from accountgate.services.token_codec import Clock, TokenCodec, utcnow
from accountgate.services.token_generator import TokenGenerator
from accountgate.validation import (
    Validator,
    email_available,
    password_confirmed,
    password_max_bytes,
    password_min_length,
    reset_link_present,
    run_validators,
    username_not_blank,
)

class AuthService(BaseService):
    """Account lifecycle manager.

    Receives all infrastructure dependencies via ``__init__`` and exposes
    request -> result methods for every auth flow.

    Parameters
    ----------
    repo:
        Account store.
    hasher:
        Credential hasher.
    token_generator:
        Source of activation and reset tokens.
    codec:
        Session token codec.
    notifier:
        Fire-and-forget email sender.
    config:
        Immutable application configuration.
    logger:
        Structured JSON logger.
    clock:
        Source of "now" for reset timestamps and the reset window.
    """

    def __init__(
        self,
        repo: AccountRepository,
        hasher: PasswordHasher,
        token_generator: TokenGenerator,
        codec: TokenCodec,
        notifier: Notifier,
        config: AppConfig,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._hasher = hasher
        self._tokens = token_generator
        self._codec = codec
        self._notifier = notifier
        self._config = config
        self._clock = clock
        self._reset_ttl = timedelta(seconds=config.RESET_TTL_SECONDS)

    # ==================================================================
    # Validator chains
    # ==================================================================

    def _signup_validators(self) -> list[Validator[SignupForm]]:
        return [
            username_not_blank,
            email_available(self._repo),
            password_min_length(self._config.MIN_PASSWORD_LENGTH),
            password_max_bytes(),
            password_confirmed(),
        ]

    def _reset_validators(self) -> list[Validator[PasswordResetForm]]:
        return [
            password_min_length(self._config.MIN_PASSWORD_LENGTH),
            password_max_bytes(),
            password_confirmed(),
            reset_link_present,
        ]

    # ==================================================================
    # Signup
    # ==================================================================

    def signup(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        password_confirmation: Optional[str],
    ) -> AuthResult:
        """Create a PENDING account and email its activation link.

        All field problems are reported together.  Nothing is persisted
        unless every validator passes.
        """
        form = SignupForm(
            username=username or "",
            email=email or "",
            password=password or "",
            password_confirmation=password_confirmation or "",
        )
        errors = run_validators(self._signup_validators(), form)
        if errors:
            return AuthResult.invalid(errors)

        normalized_email = normalize_email(form.email)
        activation_token = self._tokens.generate()
        account = Account(
            id=str(uuid.uuid4()),
            username=form.username.strip(),
            email=normalized_email,
            password_hash=self._hasher.hash(form.password),
            activated=False,
            activation_token=activation_token,
        )

        try:
            created = self._repo.create_if_absent(account)
        except DuplicateEmailError:
            # Lost a race with a concurrent signup for the same address.
            return AuthResult.invalid(
                [FieldError(field="email", message="Email is already in use.")]
            )

        self._notify(
            TEMPLATE_ACTIVATE_ACCOUNT,
            created.email,
            {
                "username": created.username,
                "email": created.email,
                "token": activation_token,
            },
        )

        self._audit("SIGNUP", "Account registered: %s", created.id, account_id=created.id)
        return AuthResult(
            success=True,
            message=MSG_SIGNUP_OK,
            account=AccountSummary.from_account(created),
        )

    # ==================================================================
    # Activation
    # ==================================================================

    def activate_account(self, email: Optional[str], token: Optional[str]) -> AuthResult:
        """Flip a PENDING account to ACTIVE and log it in.

        Unknown email and wrong token produce the same message.
        """
        if not email or not token:
            return AuthResult.failure(AuthErrorCode.INVALID_TOKEN, MSG_ACTIVATION_MISSING)

        account = self._repo.get_by_email(email)
        if account is None or account.activation_token != token:
            self._audit("ACTIVATE_FAILED", "Activation refused.")
            return AuthResult.failure(AuthErrorCode.INVALID_TOKEN, MSG_ACTIVATION_FAILED)

        if account.state is AccountState.PENDING:
            account = self._repo.update(account.id, activated=True)

        self._audit("ACTIVATE", "Account activated: %s", account.id, account_id=account.id)
        return self._logged_in(account, MSG_ACTIVATED)

    # ==================================================================
    # Login / logout
    # ==================================================================

    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and issue a session token.

        Unknown email and wrong password share one message.  A correct
        password on a PENDING account gets the specific "not activated"
        message, and no token.
        """
        if not email or not email.strip():
            return AuthResult.invalid(
                [FieldError(field="email", message="Email cannot be blank.")]
            )

        account = self._repo.get_by_email(email)
        if account is None or not self._hasher.verify(password, account.password_hash):
            self._audit("LOGIN_FAILED", "Login refused: bad credentials.")
            return AuthResult.failure(AuthErrorCode.INVALID_CREDENTIALS, MSG_BAD_CREDENTIALS)

        if account.state is not AccountState.ACTIVE:
            self._audit(
                "LOGIN_FAILED", "Login refused: account %s not activated.", account.id,
                account_id=account.id,
            )
            return AuthResult.failure(AuthErrorCode.NOT_ACTIVATED, MSG_NOT_ACTIVATED)

        self._audit("LOGIN", "Account authenticated: %s", account.id, account_id=account.id)
        return self._logged_in(account, MSG_LOGGED_IN)

    def logout(self) -> AuthResult:
        """Tell the caller to drop its bearer token.

        There is no server-side session to end; a copy of the token kept
        elsewhere remains valid until it expires.
        """
        self._audit("LOGOUT", "Logout requested.")
        return AuthResult(success=True, message=MSG_LOGGED_OUT, clear_session=True)

    # ==================================================================
    # Password reset
    # ==================================================================

    def request_password_reset(self, email: str) -> AuthResult:
        """Issue a reset token and email the reset link.

        A newer request overwrites the stored token and timestamp, which
        invalidates every earlier link.
        """
        if not email or not email.strip():
            return AuthResult.invalid(
                [FieldError(field="email", message="Email cannot be blank.")]
            )

        account = self._repo.get_by_email(email)
        if account is None:
            return AuthResult.failure(AuthErrorCode.NOT_FOUND, MSG_EMAIL_NOT_FOUND)

        reset_token = self._tokens.generate()
        account = self._repo.update(
            account.id,
            reset_token=reset_token,
            reset_issued_at=self._clock(),
        )

        self._notify(
            TEMPLATE_RESET_PASSWORD,
            account.email,
            {"email": account.email, "token": reset_token},
        )

        self._audit(
            "PASSWORD_RESET_REQUESTED", "Password reset requested: %s", account.id,
            account_id=account.id,
        )
        return AuthResult(success=True, message=MSG_RESET_SENT)

    def reset_password(
        self,
        email: Optional[str],
        token: Optional[str],
        password: Optional[str],
        password_confirmation: Optional[str],
    ) -> AuthResult:
        """Set a new password from a reset link, then log the account in.

        The link must match an exact (email, token) pair and be no older
        than ``RESET_TTL_SECONDS``.
        """
        form = PasswordResetForm(
            email=email or "",
            token=token or "",
            password=password or "",
            password_confirmation=password_confirmation or "",
        )
        errors = run_validators(self._reset_validators(), form)
        if errors:
            return AuthResult.invalid(errors)

        account = self._repo.get_by_reset_token(form.email, form.token)
        if account is None:
            return AuthResult.failure(AuthErrorCode.INVALID_TOKEN, MSG_RESET_INVALID)

        if not self._reset_window_open(account.reset_issued_at):
            self._audit(
                "PASSWORD_RESET_EXPIRED", "Password reset refused: link expired: %s", account.id,
                account_id=account.id,
            )
            return AuthResult.failure(AuthErrorCode.TOKEN_EXPIRED, MSG_RESET_EXPIRED)

        account = self._repo.update(
            account.id,
            password_hash=self._hasher.hash(form.password),
            reset_token=None,
            reset_issued_at=None,
        )

        self._audit("PASSWORD_RESET", "Password reset: %s", account.id, account_id=account.id)
        return self._logged_in(account, MSG_RESET_DONE)

    # ==================================================================
    # Helpers
    # ==================================================================

    def _notify(self, template_name: str, recipient: str, context: dict[str, str]) -> None:
        # The account is already stored; a failed email must not undo the flow.
        try:
            self._notifier.send(template_name, recipient, context)
        except Exception:
            self._logger.exception(
                "Could not dispatch '%s' email.", template_name,
                extra={"event": "EMAIL_DISPATCH_FAILED"},
            )

    def _reset_window_open(self, issued_at: Optional[datetime]) -> bool:
        if issued_at is None:
            return False
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        return self._clock() - issued_at <= self._reset_ttl

    def _logged_in(self, account: Account, message: str) -> AuthResult:
        return AuthResult(
            success=True,
            message=message,
            account=AccountSummary.from_account(account),
            session_token=self._codec.issue_for(account),
        )
