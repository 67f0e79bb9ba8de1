"""
Authentication gate — the only place a raw credential turns into an identity.

Request path
------------
``authenticate`` walks a presented credential through four checks in a
fixed order: presence, signature/structure, expiry, revocation.  The first
failing check decides the error.  On success the caller receives an
``AuthContext`` which is passed explicitly to whatever needs the identity;
nothing is stashed in request-global state.

Session lifecycle
-----------------
- ``login`` checks the password hash and issues a fresh token.
- Single-session logout is a cookie concern only and lives in the router.
- ``logout_all`` pushes the presented token onto the revocation store.  It
  is best-effort by contract: a token that does not decode, is already
  expired, or cannot be stored is logged and skipped, never raised.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.errors import (
    ExpiredToken,
    InvalidCredentials,
    MalformedToken,
    MissingCredential,
    RevokedToken,
    UserNotFound,
)
from boardapi.passwords import verify_password
from boardapi.services.revocation_service import STORAGE_ERRORS, RevocationStore
from boardapi.services.user_service import find_user_by_username
from boardapi.tokens import IssuedToken, TokenCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to a request that passed the gate."""

    subject: str
    token: str
    expires_at: datetime


class AuthenticationGate:
    def __init__(
        self, codec: TokenCodec, revocations: RevocationStore, session: AsyncSession
    ) -> None:
        self.codec = codec
        self.revocations = revocations
        self.session = session

    async def authenticate(self, token: str | None, now: datetime) -> AuthContext:
        if not token:
            raise MissingCredential()

        claims = self.codec.verify(token)
        if claims.is_expired(now):
            logger.info("Rejected expired token for %s", claims.subject)
            raise ExpiredToken()
        if await self.revocations.is_revoked(token, now):
            logger.info("Rejected revoked token for %s", claims.subject)
            raise RevokedToken()

        return AuthContext(subject=claims.subject, token=token, expires_at=claims.expires_at)

    async def login(self, username: str, password: str, now: datetime) -> IssuedToken:
        user = await find_user_by_username(self.session, username)
        if user is None:
            logger.warning("Login for unknown user %s", username)
            raise UserNotFound()
        if not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", username)
            raise InvalidCredentials()

        user.last_login_at = now
        await self.session.flush()
        issued = self.codec.issue(user.username, now)
        logger.info("Login success for %s", username)
        return issued

    async def logout_all(self, token: str | None, now: datetime) -> bool:
        """Revoke *token* if possible.  Returns True when an entry was recorded."""
        if not token:
            logger.info("No token presented, skipping revocation")
            return False

        try:
            claims = self.codec.verify(token)
        except MalformedToken as exc:
            logger.warning("Skipping revocation of undecodable token: %s", exc.detail)
            return False

        if claims.is_expired(now):
            logger.info("Token for %s already expired, nothing to revoke", claims.subject)
            return False

        try:
            await self.revocations.revoke(token, claims.expires_at, claims.subject)
        except STORAGE_ERRORS:
            logger.exception("Failed to record revocation for %s", claims.subject)
            try:
                await self.revocations.rollback()
            except STORAGE_ERRORS:
                logger.exception("Could not discard failed revocation for %s", claims.subject)
            return False
        return True
