"""Random opaque tokens for account activation and password reset links."""

from __future__ import annotations

import secrets
import string

# Characters that survive a query string without percent-encoding.
URL_SAFE_ALPHABET: str = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-._~"


class TokenGenerator:
    """Produces unguessable fixed-length tokens from a CSPRNG.

    Activation and reset tokens come from the same generator but are
    stored in separate columns and never compared with each other.
    """

    def __init__(self, length: int = 10, alphabet: str = URL_SAFE_ALPHABET) -> None:
        if length < 1:
            raise ValueError("Token length must be positive")
        self._length: int = length
        self._alphabet: str = alphabet

    def generate(self, length: int | None = None) -> str:
        size = self._length if length is None else length
        return "".join(secrets.choice(self._alphabet) for _ in range(size))
