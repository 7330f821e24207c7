"""
Credential Hasher.

One-way bcrypt hashing with a configurable work factor.  Hashing is
CPU-bound and takes no lock, so concurrent requests hash in parallel.
"""

from __future__ import annotations

import bcrypt

from accountgate.validation import MAX_PASSWORD_BYTES, password_too_long


class PasswordHasher:
    """Salted adaptive hashing of account passwords.

    Inputs longer than :data:`MAX_PASSWORD_BYTES` UTF-8 bytes are refused
    rather than truncated, so two passwords sharing a 72-byte prefix never
    share a hash.

    Parameters
    ----------
    rounds:
        bcrypt cost factor (log2 of the iteration count).  Ten rounds is
        the production default; tests use the minimum of four.
    """

    def __init__(self, rounds: int = 10) -> None:
        self._rounds: int = rounds

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Return a salted hash of *plaintext* in modular crypt format.

        Raises
        ------
        ValueError
            If *plaintext* exceeds :data:`MAX_PASSWORD_BYTES` once encoded.
        """
        if password_too_long(plaintext):
            raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes.")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Check *plaintext* against *hashed* in constant time.

        Malformed or empty hashes, and over-long passwords, yield ``False``
        rather than an exception.
        """
        if not plaintext or not hashed or password_too_long(plaintext):
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("ascii"))
        except (ValueError, TypeError, UnicodeEncodeError):
            return False
