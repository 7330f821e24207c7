"""
Form Input Models.

Raw field values as the caller submitted them.  Nothing here is
validated beyond "it is a string"; the validator chains in
:mod:`accountgate.validation` decide what is acceptable so that every
problem can be reported at once.
"""

from __future__ import annotations

from pydantic import BaseModel


class SignupForm(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""
    password_confirmation: str = ""


class PasswordResetForm(BaseModel):
    email: str = ""
    token: str = ""
    password: str = ""
    password_confirmation: str = ""


class AccountUpdateForm(BaseModel):
    """Profile edit.  A blank ``password`` keeps the current one."""

    username: str = ""
    email: str = ""
    password: str = ""
    password_confirmation: str = ""
