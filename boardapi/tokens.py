"""
Bearer token codec.

Tokens are compact HS256 JWTs carrying ``sub``, ``iat`` and ``exp`` (epoch
seconds).  The codec is pure: it never reads the clock and never checks
revocation.  ``verify`` deliberately skips PyJWT's own ``exp``/``iat``
validation so that expiry is decided against the caller's ``now``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from jwt.exceptions import PyJWTError

from boardapi.errors import MalformedToken

_REQUIRED_CLAIMS = ["sub", "iat", "exp"]


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        # Equal is not expired.
        return self.expires_at < now


@dataclass(frozen=True)
class IssuedToken:
    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime

    @property
    def max_age(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())


class TokenCodec:
    def __init__(self, secret_key: str, ttl: timedelta, algorithm: str = "HS256") -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, subject: str, now: datetime) -> IssuedToken:
        issued_at = datetime.fromtimestamp(int(now.timestamp()), tz=timezone.utc)
        expires_at = issued_at + self.ttl
        payload = {
            "sub": subject,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return IssuedToken(
            token=token, subject=subject, issued_at=issued_at, expires_at=expires_at
        )

    def verify(self, token: str) -> TokenClaims:
        """Check the signature and structure; raise ``MalformedToken`` otherwise."""
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": _REQUIRED_CLAIMS,
                },
            )
            subject = payload["sub"]
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (PyJWTError, TypeError, ValueError, OverflowError) as exc:
            raise MalformedToken(f"Token is not valid: {exc}") from exc

        if not isinstance(subject, str) or not subject:
            raise MalformedToken("Token has no subject")
        return TokenClaims(subject=subject, issued_at=issued_at, expires_at=expires_at)

    def is_expired(self, token: str, now: datetime) -> bool:
        return self.verify(token).is_expired(now)
