"""
Access Control Predicates.

Pure functions over a decoded session claim (or ``None`` when the request
carried no acceptable token).  They read nothing but their arguments, so
a request layer can evaluate them before touching the account store.
"""

from __future__ import annotations

from typing import Optional

from accountgate.models.auth_models import SessionClaim
from accountgate.models.enums import AccountRole

ADMIN_ROLE: str = AccountRole.ADMIN.value


def is_logged_in(claim: Optional[SessionClaim]) -> bool:
    """``True`` iff a claim was successfully decoded from the request's token."""
    return claim is not None


def is_admin(claim: Optional[SessionClaim], admin_role: str = ADMIN_ROLE) -> bool:
    """``True`` iff logged in with the administrative role."""
    return claim is not None and claim.role == admin_role


def is_correct_user(
    claim: Optional[SessionClaim],
    target_account_id: str,
    admin_role: str = ADMIN_ROLE,
) -> bool:
    """``True`` iff the claim owns *target_account_id*, or belongs to an admin."""
    if claim is None:
        return False
    return claim.account_id == target_account_id or is_admin(claim, admin_role)
