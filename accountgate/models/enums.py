"""
Shared Enumerations for AccountGate Models.

StrEnum values compare equal to their string equivalents, so
``claim.role == "ADMIN"`` works as expected.
"""

from __future__ import annotations
from enum import StrEnum


class AccountRole(StrEnum):
    """Known account roles.

    ``role`` is optional on an account; an account without a role is an
    ordinary user for every access-control decision.
    """

    USER = "USER"
    ADMIN = "ADMIN"


class AccountState(StrEnum):
    """Lifecycle state derived from the ``activated`` flag."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"


class AuthErrorCode(StrEnum):
    """Exhaustive enumeration of auth flow outcomes other than success.

    Several codes share one user-facing message on purpose: login never
    tells the caller whether the email or the password was wrong.
    """

    VALIDATION_ERROR = "validation_error"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_ACTIVATED = "not_activated"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    NOT_FOUND = "not_found"
