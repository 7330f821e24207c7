"""
Access Guard Decorators.

Factories producing decorators that gate service methods behind the
access-control predicates.  A guarded method takes the caller's
``claim`` as its first argument (after ``self``); the guard evaluates the
predicate before the method body runs, so a denied request never reaches
the repository.

Usage::

    from accountgate.jwt_auth import require_admin, require_correct_user

    class UserService:
        @require_admin()
        def list_accounts(self, claim): ...

        @require_correct_user()
        def get_account(self, claim, account_id): ...
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from accountgate.access_control import ADMIN_ROLE, is_admin, is_correct_user, is_logged_in
from accountgate.exceptions import Forbidden, NotLoggedIn
from accountgate.models.auth_models import SessionClaim

R = TypeVar("R")
Method = Callable[..., R]


def _admin_role_of(instance: object) -> str:
    return getattr(instance, "admin_role", ADMIN_ROLE)


def require_login() -> Callable[[Method[R]], Method[R]]:
    """Refuse the call unless a session claim is present."""

    def decorator(func: Method[R]) -> Method[R]:
        @wraps(func)
        def wrapper(self: object, claim: Optional[SessionClaim], *args: Any, **kwargs: Any) -> R:
            if not is_logged_in(claim):
                raise NotLoggedIn("Login required.")
            return func(self, claim, *args, **kwargs)

        return wrapper

    return decorator


def require_admin() -> Callable[[Method[R]], Method[R]]:
    """Refuse the call unless the claim carries the administrative role."""

    def decorator(func: Method[R]) -> Method[R]:
        @wraps(func)
        def wrapper(self: object, claim: Optional[SessionClaim], *args: Any, **kwargs: Any) -> R:
            if not is_logged_in(claim):
                raise NotLoggedIn("Login required.")
            if not is_admin(claim, _admin_role_of(self)):
                raise Forbidden("Administrator access required.")
            return func(self, claim, *args, **kwargs)

        return wrapper

    return decorator


def require_correct_user() -> Callable[[Method[R]], Method[R]]:
    """Refuse the call unless the claim owns the target account or is an admin.

    The target account id is the positional argument right after ``claim``.
    """

    def decorator(func: Method[R]) -> Method[R]:
        @wraps(func)
        def wrapper(
            self: object,
            claim: Optional[SessionClaim],
            account_id: str,
            *args: Any,
            **kwargs: Any,
        ) -> R:
            if not is_logged_in(claim):
                raise NotLoggedIn("Login required.")
            if not is_correct_user(claim, account_id, _admin_role_of(self)):
                raise Forbidden("Not allowed to act on this account.")
            return func(self, claim, account_id, *args, **kwargs)

        return wrapper

    return decorator
