"""
Exception Hierarchy.

Only infrastructure faults and access-control denials travel as
exceptions.  Expected outcomes of an auth flow (bad password, expired
reset link, invalid form input) are returned as ``AuthResult`` models
instead; see :mod:`accountgate.models.auth_models`.
"""

from __future__ import annotations


class AccountGateError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Repository faults
# ---------------------------------------------------------------------------

class RepositoryError(AccountGateError):
    """The account store failed.  Fatal for the current request, never retried."""


class DuplicateEmailError(RepositoryError):
    """An insert or update would break email uniqueness."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email already registered: {email}")
        self.email = email


class AccountNotFoundError(RepositoryError):
    """An update targeted an account id that does not exist."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"No account with id {account_id}")
        self.account_id = account_id


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------

class AccessDenied(AccountGateError):
    """A guarded operation was refused before it ran."""

    status_code: int = 403


class NotLoggedIn(AccessDenied):
    """No valid session claim accompanied the request."""

    status_code = 401


class Forbidden(AccessDenied):
    """A session claim was present but lacks the required privilege."""


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------

class SigningKeyMissing(AccountGateError):
    """The token codec was built without a signing key."""
