"""Common base for services: the injected logger and audit-event helper."""

from __future__ import annotations

import logging
from typing import Optional

from accountgate.logger import StructuredLogger


class BaseService:
    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _audit(
        self,
        event: str,
        message: str,
        *args: object,
        account_id: Optional[str] = None,
        level: int = logging.INFO,
    ) -> None:
        """Log one account-lifecycle event under a stable ``event`` name."""
        extra: dict[str, str] = {"event": event}
        if account_id is not None:
            extra["account_id"] = account_id
        self._logger.logger.log(level, message, *args, extra=extra)
