"""
Session Token Codec.

Issues and verifies HS256-signed JWTs that carry a :class:`SessionClaim`.
Tokens are self-contained: there is no server-side session table and no
revocation list, so a token stays valid until its ``exp`` even after the
holder "logs out".

Verification collapses every failure (bad signature, malformed token,
expired, missing claim) into ``None`` so that callers cannot tell a
forged token from a stale one.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from accountgate.config import AppConfig
from accountgate.exceptions import SigningKeyMissing
from accountgate.logger import StructuredLogger
from accountgate.models.account import Account
from accountgate.models.auth_models import SessionClaim

Clock = Callable[[], datetime]

_REQUIRED_CLAIMS: list[str] = ["sub", "username", "iat", "exp"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Signs and verifies session bearer tokens.

    Parameters
    ----------
    secret:
        HMAC signing key.  Must be non-empty.
    logger:
        Structured logger; failures are logged at debug level without the
        token itself.
    algorithm:
        JWT signing algorithm.
    default_ttl:
        Lifetime applied when :meth:`issue` is called without one.
    clock:
        Source of "now" for ``iat``/``exp``.  Verification uses PyJWT's
        own wall-clock check.
    """

    def __init__(
        self,
        secret: str,
        logger: StructuredLogger,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(days=365),
        clock: Clock = utcnow,
    ) -> None:
        if not secret:
            raise SigningKeyMissing("A signing key is required to issue session tokens")
        self._secret: str = secret
        self._logger: StructuredLogger = logger
        self._algorithm: str = algorithm
        self._default_ttl: timedelta = default_ttl
        self._clock: Clock = clock

    @classmethod
    def from_config(
        cls, config: AppConfig, logger: StructuredLogger, clock: Clock = utcnow,
    ) -> "TokenCodec":
        return cls(
            secret=config.SECRET_KEY.get_secret_value(),
            logger=logger,
            algorithm=config.JWT_ALGORITHM,
            default_ttl=timedelta(days=config.SESSION_TTL_DAYS),
            clock=clock,
        )

    def issue(self, claim: SessionClaim, ttl: Optional[timedelta] = None) -> str:
        """Encode *claim* into a signed token expiring at ``now + ttl``."""
        now = self._clock()
        expires = now + (ttl if ttl is not None else self._default_ttl)
        payload: dict[str, object] = {
            "sub": claim.account_id,
            "username": claim.username,
            "role": claim.role,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_for(self, account: Account, ttl: Optional[timedelta] = None) -> str:
        """Issue a session token for *account*."""
        return self.issue(
            SessionClaim(
                account_id=account.id,
                username=account.username,
                role=account.role,
            ),
            ttl,
        )

    def verify(self, token: Optional[str]) -> Optional[SessionClaim]:
        """Return the claim in *token*, or ``None`` if it is not acceptable."""
        if not token:
            return None
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
            return SessionClaim(
                account_id=str(data["sub"]),
                username=str(data["username"]),
                role=data.get("role"),
                issued_at=datetime.fromtimestamp(data["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(data["exp"], tz=timezone.utc),
            )
        except jwt.InvalidTokenError as exc:
            self._logger.debug(
                "Session token rejected: %s", type(exc).__name__,
                extra={"event": "TOKEN_REJECTED"},
            )
            return None
        except (KeyError, TypeError, ValueError):
            self._logger.debug(
                "Session token payload malformed.",
                extra={"event": "TOKEN_REJECTED"},
            )
            return None
