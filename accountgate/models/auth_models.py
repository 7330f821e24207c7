"""
Authentication Pipeline Models.

Pydantic models for the request/response contracts between
``AuthService`` and whatever request layer sits in front of it.

Every auth operation returns a structured, inspectable result rather
than raw strings or exception side-channels.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from accountgate.models.account import AccountSummary
from accountgate.models.enums import AuthErrorCode


# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

MSG_SIGNUP_OK: str = "Please check your email to activate your account."
MSG_ACTIVATION_MISSING: str = "Token or email was not provided."
MSG_ACTIVATION_FAILED: str = "Could not activate account."
MSG_ACTIVATED: str = "Your account is activated."
MSG_BAD_CREDENTIALS: str = "Email or password is incorrect."
MSG_NOT_ACTIVATED: str = "Account not activated. Check your email for activation link."
MSG_LOGGED_IN: str = "You are logged in."
MSG_LOGGED_OUT: str = "Logged out."
MSG_EMAIL_NOT_FOUND: str = "Email address not found."
MSG_RESET_SENT: str = "Email sent with password reset instructions."
MSG_RESET_INVALID: str = "Reset email or token is invalid."
MSG_RESET_EXPIRED: str = "Password reset has expired."
MSG_RESET_DONE: str = "Password has been reset."


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class FieldError(BaseModel):
    """One validation failure, scoped to a single form field."""

    field: str
    message: str

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Session claim
# ---------------------------------------------------------------------------

class SessionClaim(BaseModel):
    """Decoded payload of a bearer token.

    Not persisted anywhere; it only exists inside the signed token the
    caller holds and in memory for the duration of one request.
    """

    account_id: str
    username: str
    role: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for every account lifecycle operation.

    Attributes
    ----------
    success:
        ``True`` when the operation completed.
    error_code:
        Structured error category (``None`` on success).
    message:
        Flash-style line for the caller to display, on success or failure.
    errors:
        Field-scoped validation failures, all of them, in validator order.
    account:
        Public summary of the affected account, when there is one.
    session_token:
        Freshly issued bearer token on login, activation and reset.
    clear_session:
        ``True`` when the caller must discard its bearer token.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    message: Optional[str] = None
    errors: list[FieldError] = Field(default_factory=list)
    account: Optional[AccountSummary] = None
    session_token: Optional[str] = None
    clear_session: bool = False

    model_config = {"from_attributes": True}

    @classmethod
    def invalid(cls, errors: list[FieldError]) -> "AuthResult":
        return cls(
            success=False,
            error_code=AuthErrorCode.VALIDATION_ERROR,
            errors=errors,
        )

    @classmethod
    def failure(cls, code: AuthErrorCode, message: str) -> "AuthResult":
        return cls(success=False, error_code=code, message=message)
