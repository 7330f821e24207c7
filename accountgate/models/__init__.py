"""
Data Models Package.

Re-exports all Pydantic models:
    from accountgate.models import Account, AccountSummary, SessionClaim, AuthResult
"""

from accountgate.models.account import Account, AccountSummary
from accountgate.models.auth_models import AuthResult, FieldError, SessionClaim
from accountgate.models.enums import AccountRole, AccountState, AuthErrorCode
from accountgate.models.forms import AccountUpdateForm, PasswordResetForm, SignupForm
from accountgate.models.service_models import ServiceResult

__all__ = [
    "Account",
    "AccountRole",
    "AccountState",
    "AccountSummary",
    "AccountUpdateForm",
    "AuthErrorCode",
    "AuthResult",
    "FieldError",
    "PasswordResetForm",
    "ServiceResult",
    "SessionClaim",
    "SignupForm",
]
