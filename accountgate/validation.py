"""
Form Validator Chains.

A validator is a plain function that looks at one submitted form and
returns at most one :class:`FieldError`.  Callers hold an ordered list of
validators and :func:`run_validators` runs every one of them, so the
caller can show all problems at once instead of one per round-trip.
"""

from __future__ import annotations

import re
from typing import Callable, Optional, Sequence, TypeVar

from pydantic import BaseModel

from accountgate.models.auth_models import FieldError
from accountgate.repositories.account_repository import AccountRepository, normalize_email

FormT = TypeVar("FormT", bound=BaseModel)
Validator = Callable[[FormT], Optional[FieldError]]

# bcrypt only considers the first 72 bytes of its input.
MAX_PASSWORD_BYTES: int = 72

EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


def run_validators(validators: Sequence[Validator[FormT]], form: FormT) -> list[FieldError]:
    """Run every validator against *form* and collect the failures in order."""
    errors: list[FieldError] = []
    for validator in validators:
        error = validator(form)
        if error is not None:
            errors.append(error)
    return errors


def is_well_formed_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email.strip()))


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------

def username_not_blank(form: BaseModel) -> Optional[FieldError]:
    if not getattr(form, "username", "").strip():
        return FieldError(field="username", message="Username cannot be blank.")
    return None


def email_well_formed(form: BaseModel) -> Optional[FieldError]:
    email: str = getattr(form, "email", "")
    if not email.strip():
        return FieldError(field="email", message="Email cannot be blank.")
    if not is_well_formed_email(email):
        return FieldError(field="email", message="Email format is invalid.")
    return None


def email_available(
    repo: AccountRepository, exclude_id: Optional[str] = None,
) -> Validator[BaseModel]:
    """Email is present, well formed and not registered to another account.

    *exclude_id* lets a profile update keep its own address.  The repository
    still enforces uniqueness on insert, since this check can race.
    """
    def _validate(form: BaseModel) -> Optional[FieldError]:
        format_error = email_well_formed(form)
        if format_error is not None:
            return format_error
        existing = repo.get_by_email(normalize_email(getattr(form, "email")))
        if existing is not None and existing.id != exclude_id:
            return FieldError(field="email", message="Email is already in use.")
        return None

    return _validate


def password_min_length(min_length: int, optional: bool = False) -> Validator[BaseModel]:
    """Password has at least *min_length* characters.

    With *optional*, an empty password passes (profile edits keep the old one).
    """
    def _validate(form: BaseModel) -> Optional[FieldError]:
        password: str = getattr(form, "password", "")
        if optional and not password:
            return None
        if len(password) < min_length:
            return FieldError(
                field="password",
                message=f"Password must be at least {min_length} characters.",
            )
        return None

    return _validate


def password_max_bytes(optional: bool = False) -> Validator[BaseModel]:
    """Password fits in the bytes bcrypt actually hashes."""
    def _validate(form: BaseModel) -> Optional[FieldError]:
        password: str = getattr(form, "password", "")
        if optional and not password:
            return None
        if password_too_long(password):
            return FieldError(
                field="password",
                message=f"Password must be at most {MAX_PASSWORD_BYTES} bytes.",
            )
        return None

    return _validate


def password_confirmed(optional: bool = False) -> Validator[BaseModel]:
    def _validate(form: BaseModel) -> Optional[FieldError]:
        password: str = getattr(form, "password", "")
        if optional and not password:
            return None
        if password != getattr(form, "password_confirmation", ""):
            return FieldError(
                field="password_confirmation",
                message="Password confirmation does not match password.",
            )
        return None

    return _validate


def reset_link_present(form: BaseModel) -> Optional[FieldError]:
    if not getattr(form, "email", "").strip() or not getattr(form, "token", "").strip():
        return FieldError(field="token", message="Reset email or token is invalid.")
    return None
