"""
Account Repository.

Handles all account data access against the SQLite store.  Services never
touch ``db.sqlite`` directly.

Email is the primary lookup key for every auth flow and is always stored
and queried lowercased.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from accountgate.database import DatabaseManager
from accountgate.exceptions import (
    AccountNotFoundError,
    DuplicateEmailError,
    RepositoryError,
)
from accountgate.logger import StructuredLogger
from accountgate.models.account import Account
from accountgate.repositories.base_repository import BaseRepository


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


class AccountRepository(BaseRepository):
    """Data access layer for Account entities.

    ``create_if_absent`` and ``update`` lean on the ``UNIQUE(email)``
    constraint, so uniqueness holds even when two requests pass the
    service-level "is this email taken?" check at the same moment.
    """

    TABLE = "accounts"

    # Columns ``update`` is allowed to touch.  ``id`` and ``created_at``
    # are immutable.
    _UPDATABLE: frozenset[str] = frozenset({
        "username",
        "email",
        "password_hash",
        "role",
        "activated",
        "activation_token",
        "reset_token",
        "reset_issued_at",
    })

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, account_id: str) -> Optional[Account]:
        """Fetch an account by primary key."""
        def _op() -> Optional[Account]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE id = ?", (account_id,)
            ).fetchone()
            return Account(**dict(row)) if row else None

        return self._read(_op, operation_name="get_by_id (accounts)")

    def get_by_email(self, email: str) -> Optional[Account]:
        """Fetch an account by email address (case-insensitive)."""
        normalized_email = normalize_email(email)

        def _op() -> Optional[Account]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE email = ?", (normalized_email,)
            ).fetchone()
            return Account(**dict(row)) if row else None

        return self._read(_op, operation_name="get_by_email (accounts)")

    def get_by_reset_token(self, email: str, reset_token: str) -> Optional[Account]:
        """Fetch the account matching an exact (email, reset token) pair."""
        normalized_email = normalize_email(email)

        def _op() -> Optional[Account]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} "
                "WHERE email = ? AND reset_token IS NOT NULL AND reset_token = ?",
                (normalized_email, reset_token),
            ).fetchone()
            return Account(**dict(row)) if row else None

        return self._read(_op, operation_name="get_by_reset_token (accounts)")

    def list_accounts(self, limit: int = 50) -> list[Account]:
        """Return up to *limit* accounts ordered by username."""
        def _op() -> list[Account]:
            rows = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} ORDER BY username ASC LIMIT ?",
                (limit,),
            ).fetchall()
            return [Account(**dict(row)) for row in rows]

        return self._read(_op, operation_name="list_accounts (accounts)")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_if_absent(self, account: Account) -> Account:
        """Insert *account* unless its email is already registered.

        Raises:
            DuplicateEmailError: The email is taken (possibly by a
                concurrent insert that won the race).
            RepositoryError: Any other storage failure.
        """
        now = self._now()
        email = normalize_email(account.email)
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {self.TABLE}
                        (id, username, email, password_hash, role, activated,
                         activation_token, reset_token, reset_issued_at,
                         created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        account.id,
                        account.username,
                        email,
                        account.password_hash,
                        account.role,
                        int(account.activated),
                        account.activation_token,
                        account.reset_token,
                        _iso(account.reset_issued_at),
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if _is_email_conflict(exc):
                self._logger.info(
                    "Insert rejected: email already registered.",
                    extra={"event": "DUPLICATE_EMAIL"},
                )
                raise DuplicateEmailError(email) from exc
            raise RepositoryError(f"Failed to create account: {exc}") from exc
        except sqlite3.Error as exc:
            self._logger.error("Failed to create account: %s", exc)
            raise RepositoryError(f"Failed to create account: {exc}") from exc

        created = self.get_by_id(account.id)
        if created is None:
            raise RepositoryError(f"Account {account.id} vanished after insert")
        self._logger.info("Account created: %s", created.id)
        return created

    def update(self, account_id: str, **fields: object) -> Account:
        """Apply a partial update and return the stored result.

        Raises:
            ValueError: A field name is not updatable.
            DuplicateEmailError: A new email collides with another account.
            AccountNotFoundError: No account has *account_id*.
            RepositoryError: Any other storage failure.
        """
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        values: dict[str, object] = dict(fields)
        if "email" in values:
            values["email"] = normalize_email(str(values["email"]))
        if "activated" in values:
            values["activated"] = int(bool(values["activated"]))
        if "reset_issued_at" in values:
            values["reset_issued_at"] = _iso(values["reset_issued_at"])  # type: ignore[arg-type]
        values["updated_at"] = self._now()

        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE {self.TABLE} SET {assignments} WHERE id = ?",
                    (*values.values(), account_id),
                )
        except sqlite3.IntegrityError as exc:
            if _is_email_conflict(exc):
                raise DuplicateEmailError(str(values.get("email", ""))) from exc
            raise RepositoryError(f"Failed to update account: {exc}") from exc
        except sqlite3.Error as exc:
            self._logger.error("Failed to update account %s: %s", account_id, exc)
            raise RepositoryError(f"Failed to update account: {exc}") from exc

        if cursor.rowcount == 0:
            raise AccountNotFoundError(account_id)

        updated = self.get_by_id(account_id)
        if updated is None:
            raise AccountNotFoundError(account_id)
        return updated

    def delete(self, account_id: str) -> bool:
        """Remove an account.  Returns ``False`` if it did not exist."""
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {self.TABLE} WHERE id = ?", (account_id,),
                )
        except sqlite3.Error as exc:
            self._logger.error("Failed to delete account %s: %s", account_id, exc)
            raise RepositoryError(f"Failed to delete account: {exc}") from exc

        deleted = cursor.rowcount > 0
        if deleted:
            self._logger.info("Account deleted: %s", account_id)
        return deleted


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _is_email_conflict(exc: sqlite3.IntegrityError) -> bool:
    return "accounts.email" in str(exc)
