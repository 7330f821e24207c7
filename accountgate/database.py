"""
SQLite Connection Owner.

One ``DatabaseManager`` per process holds the single connection behind
the account store, the lock that serialises access to it, and the
transaction helpers repositories write through.  No query logic lives
here.

Usage::

    db = DatabaseManager(sqlite_path="accounts.db", logger=StructuredLogger(name="database"))
    initialize_schema(db.sqlite, logger)
    repo = AccountRepository(db=db, logger=logger)
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from accountgate.logger import StructuredLogger

MEMORY_PATH: str = ":memory:"

# Seconds a statement waits on a lock held by another process.
_BUSY_TIMEOUT: float = 5.0


class DatabaseManager:
    """Shared SQLite connection plus its lock.

    The connection is opened with ``check_same_thread=False`` because
    request threads share it.  Reads and writes both go through
    :attr:`lock`; writes use :meth:`transaction` so commit and rollback
    happen in one place.

    Parameters
    ----------
    sqlite_path:
        Database file, or ``":memory:"``.
    logger:
        Structured logger.
    """

    def __init__(self, sqlite_path: Union[Path, str], logger: StructuredLogger) -> None:
        self._logger = logger
        self._lock = threading.RLock()
        self._path = str(sqlite_path)
        self._conn = self._open(self._path)

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._conn

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run one unit of writes under the lock.

        Commits on success and rolls back on any exception, which is
        re-raised.
        """
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except BaseException:
                self._conn.rollback()
                raise

    def close(self) -> None:
        """Close the connection.  Idempotent."""
        with self._lock:
            try:
                self._conn.close()
            except sqlite3.ProgrammingError:
                return
        self._logger.info("SQLite connection closed: %s", self._path)

    def _open(self, path: str) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(path, timeout=_BUSY_TIMEOUT, check_same_thread=False)
        except sqlite3.OperationalError as exc:
            self._logger.error("Cannot open database at '%s': %s", path, exc)
            raise
        conn.row_factory = sqlite3.Row
        if path != MEMORY_PATH:
            conn.execute("PRAGMA journal_mode=WAL")
        self._logger.info("SQLite database opened at %s", path)
        return conn
