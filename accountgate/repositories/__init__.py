"""
Repository Layer Package.

Provides data-access abstractions over the SQLite account store.
All database operations flow through repositories; services never access
db.sqlite directly.

Usage:
    from accountgate.repositories.account_repository import AccountRepository
"""

from accountgate.repositories.account_repository import AccountRepository, normalize_email
from accountgate.repositories.base_repository import BaseRepository

__all__ = [
    "AccountRepository",
    "BaseRepository",
    "normalize_email",
]
