"""
Revocation store — persistent deny-list of tokens invalidated by logout-all.

Entries are keyed by the SHA-256 digest of the token string and carry the
token's own expiry.  Once that expiry has passed (strictly, as in
``TokenClaims.is_expired``) the token is unusable anyway, so
``is_revoked`` evicts stale entries lazily and ``purge_expired`` sweeps
the rest in bulk.
"""
import hashlib
import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.clock import as_utc
from boardapi.models import RevokedToken

logger = logging.getLogger(__name__)

# Failures a revocation write can surface: SQLAlchemy errors, driver-level
# connection errors that asyncpg raises unwrapped, and an unsupported dialect.
STORAGE_ERRORS = (SQLAlchemyError, OSError, RuntimeError)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def token_identity(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class RevocationStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def revoke(self, token: str, expires_at: datetime, subject: str) -> None:
        """
        Record *token* as revoked until *expires_at*.

        A single ``INSERT ... ON CONFLICT DO UPDATE`` keeps repeated and
        concurrent calls for the same token down to one row.
        """
        token_id = token_identity(token)
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for revocation: {dialect}")

        stmt = insert(RevokedToken).values(
            token_id=token_id, username=subject, expires_at=expires_at
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RevokedToken.token_id],
            set_={"username": subject, "expires_at": expires_at},
        )
        await self.session.execute(stmt)
        await self.session.flush()
        logger.info("Token revoked for %s until %s", subject, expires_at.isoformat())

    async def find(self, token: str) -> RevokedToken | None:
        result = await self.session.execute(
            select(RevokedToken)
            .where(RevokedToken.token_id == token_identity(token))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def is_revoked(self, token: str, now: datetime) -> bool:
        entry = await self.find(token)
        if entry is None:
            return False
        # A token is still accepted at its exact expiry, so its entry must be too.
        if as_utc(entry.expires_at) >= now:
            return True

        await self.session.delete(entry)
        await self.session.flush()
        logger.debug("Evicted stale revocation entry for %s", entry.username)
        return False

    async def purge_expired(self, now: datetime) -> int:
        """Delete every entry whose token has already expired; return the count."""
        result = await self.session.execute(
            delete(RevokedToken).where(RevokedToken.expires_at < now)
        )
        return result.rowcount or 0

    async def rollback(self) -> None:
        """Discard pending revocation writes; a dead connection is invalidated instead."""
        try:
            await self.session.rollback()
        except STORAGE_ERRORS as exc:
            logger.warning("Rollback failed, invalidating session: %s", exc)
            await self.session.invalidate()
