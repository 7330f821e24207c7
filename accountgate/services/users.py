"""
Account Profile Service.

Listing, viewing, editing and deleting accounts.  Every public method is
guarded by an access-control decorator, so a denied caller is turned away
before the repository is consulted.

Architectural notes:
    - Guards raise ``NotLoggedIn`` / ``Forbidden``; the request layer maps
      them to 401 / 403.
    - Expected outcomes (missing account, invalid form) come back as a
      ``ServiceResult`` with the matching ``status_code``.
"""

from __future__ import annotations

from typing import Optional

from accountgate.config import AppConfig
from accountgate.exceptions import DuplicateEmailError
from accountgate.jwt_auth import require_admin, require_correct_user
from accountgate.logger import StructuredLogger
from accountgate.models.account import Account, AccountSummary
from accountgate.models.auth_models import FieldError, SessionClaim
from accountgate.models.forms import AccountUpdateForm
from accountgate.models.service_models import ServiceResult
from accountgate.repositories.account_repository import AccountRepository
from accountgate.services.base_service import BaseService
from accountgate.services.password_hasher import PasswordHasher
from accountgate.validation import (
    Validator,
    email_available,
    password_confirmed,
    password_max_bytes,
    password_min_length,
    run_validators,
    username_not_blank,
)

_LIST_LIMIT: int = 50


class UserService(BaseService):
    """Service layer for account profile operations."""

    def __init__(
        self,
        repo: AccountRepository,
        hasher: PasswordHasher,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._hasher = hasher
        self._config = config

    @property
    def admin_role(self) -> str:
        return self._config.ADMIN_ROLE

    @require_admin()
    def list_accounts(self, claim: Optional[SessionClaim]) -> ServiceResult[list[AccountSummary]]:
        """All accounts by username, capped at 50.  Admin only."""
        accounts = self._repo.list_accounts(limit=_LIST_LIMIT)
        return ServiceResult(
            success=True,
            data=[AccountSummary.from_account(account) for account in accounts],
        )

    @require_correct_user()
    def get_account(
        self, claim: Optional[SessionClaim], account_id: str,
    ) -> ServiceResult[AccountSummary]:
        account = self._repo.get_by_id(account_id)
        if account is None:
            return _not_found()
        return ServiceResult(success=True, data=AccountSummary.from_account(account))

    @require_correct_user()
    def update_account(
        self,
        claim: Optional[SessionClaim],
        account_id: str,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str] = "",
        password_confirmation: Optional[str] = "",
    ) -> ServiceResult[AccountSummary]:
        """Edit username, email and optionally the password.

        A blank password leaves the stored hash untouched.
        """
        existing = self._repo.get_by_id(account_id)
        if existing is None:
            return _not_found()

        form = AccountUpdateForm(
            username=username or "",
            email=email or "",
            password=password or "",
            password_confirmation=password_confirmation or "",
        )
        errors = run_validators(self._update_validators(account_id), form)
        if errors:
            return ServiceResult(success=False, errors=errors, status_code=422)

        fields: dict[str, object] = {
            "username": form.username.strip(),
            "email": form.email,
        }
        if form.password:
            fields["password_hash"] = self._hasher.hash(form.password)

        try:
            updated: Account = self._repo.update(account_id, **fields)
        except DuplicateEmailError:
            return ServiceResult(
                success=False,
                errors=[FieldError(field="email", message="Email is already in use.")],
                status_code=422,
            )

        self._audit("ACCOUNT_UPDATE", "Account updated: %s", account_id, account_id=account_id)
        return ServiceResult(success=True, data=AccountSummary.from_account(updated))

    @require_correct_user()
    def delete_account(self, claim: Optional[SessionClaim], account_id: str) -> ServiceResult[None]:
        """Remove an account.

        When the caller deletes its own account the result asks it to drop
        its bearer token as well.
        """
        if not self._repo.delete(account_id):
            return _not_found()

        own_account = claim is not None and claim.account_id == account_id
        self._audit("ACCOUNT_DELETE", "Account deleted: %s", account_id, account_id=account_id)
        return ServiceResult(success=True, clear_session=own_account)

    def _update_validators(self, account_id: str) -> list[Validator[AccountUpdateForm]]:
        return [
            username_not_blank,
            email_available(self._repo, exclude_id=account_id),
            password_min_length(self._config.MIN_PASSWORD_LENGTH, optional=True),
            password_max_bytes(optional=True),
            password_confirmed(optional=True),
        ]


def _not_found() -> ServiceResult:
    return ServiceResult(success=False, error="Account not found.", status_code=404)
