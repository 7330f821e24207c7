"""
Base Repository.

Shared plumbing for repositories: the database handle, the logger, a UTC
timestamp helper, and :meth:`BaseRepository._read`, which funnels every
query through the connection lock and turns driver errors into
``RepositoryError``.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Callable, TypeVar

from accountgate.database import DatabaseManager
from accountgate.exceptions import RepositoryError
from accountgate.logger import StructuredLogger

T = TypeVar("T")


class BaseRepository:
    """Receives its dependencies through ``__init__``."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._db.sqlite

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _read(self, op: Callable[[], T], *, operation_name: str) -> T:
        # The connection is shared; a cursor must not interleave with a write.
        try:
            with self._db.lock:
                return op()
        except sqlite3.Error as exc:
            self._logger.error("Read failed for %s: %s", operation_name, exc)
            raise RepositoryError(f"{operation_name} failed: {exc}") from exc
