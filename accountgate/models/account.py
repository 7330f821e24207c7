"""
Account Model.

Pydantic representation of a row in the ``accounts`` table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from accountgate.models.enums import AccountState


class Account(BaseModel):
    """A registered account.

    ``password_hash`` is the bcrypt output of the credential hasher.  The
    plaintext password never reaches this model.
    """

    id: str
    username: str = Field(min_length=1)
    email: str
    password_hash: str = Field(min_length=1)
    role: Optional[str] = None
    activated: bool = False
    activation_token: Optional[str] = None
    reset_token: Optional[str] = None
    reset_issued_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def state(self) -> AccountState:
        return AccountState.ACTIVE if self.activated else AccountState.PENDING


class AccountSummary(BaseModel):
    """Public view of an account.  Carries no credential material."""

    id: str
    username: str
    email: str
    role: Optional[str] = None
    activated: bool = False
    state: AccountState = AccountState.PENDING

    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            role=account.role,
            activated=account.activated,
            state=account.state,
        )
