"""
Service Layer Data Transfer Objects.

Generic result envelope for services outside the auth pipeline
(profile management, email delivery).
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from accountgate.models.auth_models import FieldError

T = TypeVar("T")

__all__ = ["ServiceResult"]


class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    Generic over ``T`` so callers can annotate return types precisely
    (e.g. ``ServiceResult[list[AccountSummary]]``).  ``status_code``
    mirrors the HTTP status a routing layer would answer with.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    errors: list[FieldError] = Field(default_factory=list)
    status_code: int = 200
    clear_session: bool = False
