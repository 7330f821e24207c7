"""
Account Store Schema.

:func:`initialize_schema` brings a SQLite database to
:data:`CURRENT_SCHEMA_VERSION` and is safe to call on every start.  The
applied version lives in SQLite's own ``PRAGMA user_version`` header
field.

A fresh database (version 0) gets the full DDL in one step.  An older
database replays the steps in :data:`_MIGRATIONS` above its version.
Either way the upgrade and the version bump commit together, or not at
all.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from accountgate.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema", "schema_version"]

CURRENT_SCHEMA_VERSION: int = 2

# Email is stored lowercased.  UNIQUE(email) is what finally settles two
# concurrent signups for the same address.
_DDL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id               TEXT PRIMARY KEY,
        username         TEXT NOT NULL CHECK (length(username) > 0),
        email            TEXT NOT NULL UNIQUE,
        password_hash    TEXT NOT NULL CHECK (length(password_hash) > 0),
        role             TEXT,
        activated        INTEGER NOT NULL DEFAULT 0,
        activation_token TEXT,
        reset_token      TEXT,
        reset_issued_at  TEXT,
        created_at       TEXT NOT NULL,
        updated_at       TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_accounts_username ON accounts(username)",
    "CREATE INDEX IF NOT EXISTS idx_accounts_email_reset ON accounts(email, reset_token)",
)

Migration = Callable[[sqlite3.Connection, StructuredLogger], None]


def _add_reset_lookup_index(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_accounts_email_reset ON accounts(email, reset_token)"
    )
    logger.info("Added index idx_accounts_email_reset.")


# Target version -> step that reaches it from the version below.
_MIGRATIONS: dict[int, Migration] = {
    2: _add_reset_lookup_index,
}


def schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Create or upgrade the account store in place.

    Raises whatever the failing statement raised, after rolling back; the
    database is left at its previous version.
    """
    current = schema_version(conn)
    if current >= CURRENT_SCHEMA_VERSION:
        logger.debug("Schema is current (version %d).", current)
        return

    if current == 0:
        steps: list[Migration] = [_create_everything]
    else:
        steps = [
            _MIGRATIONS[v] for v in sorted(_MIGRATIONS)
            if current < v <= CURRENT_SCHEMA_VERSION
        ]

    logger.info("Upgrading schema %d -> %d.", current, CURRENT_SCHEMA_VERSION)
    # sqlite3 does not open a transaction implicitly before DDL.
    if not conn.in_transaction:
        conn.execute("BEGIN")
    try:
        for step in steps:
            step(conn, logger)
        # PRAGMA does not take bound parameters; the value is an int constant.
        conn.execute(f"PRAGMA user_version = {int(CURRENT_SCHEMA_VERSION)}")
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error("Schema upgrade failed; database left at version %d.", current)
        raise


def _create_everything(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    for statement in _DDL:
        conn.execute(statement)
    logger.info("Created account store (%d statements).", len(_DDL))
