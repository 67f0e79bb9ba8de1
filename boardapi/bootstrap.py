"""
Explicit wiring of the authentication and throttling components.

``build_components`` constructs the process-wide pieces once (token codec,
author lock registry, clock).  Collaborators that need a database session
are built per request from them via the factory methods, so each request
gets its own gate, revocation store and rate limiter bound to its session.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.clock import utcnow
from boardapi.config import Settings
from boardapi.services.auth_service import AuthenticationGate
from boardapi.services.rate_limiter import AuthorLocks, RateLimiter
from boardapi.services.revocation_service import RevocationStore
from boardapi.tokens import TokenCodec


@dataclass
class Components:
    settings: Settings
    codec: TokenCodec
    author_locks: AuthorLocks = field(default_factory=AuthorLocks)
    clock: Callable[[], datetime] = utcnow

    def revocation_store(self, db: AsyncSession) -> RevocationStore:
        return RevocationStore(db)

    def gate(self, db: AsyncSession) -> AuthenticationGate:
        return AuthenticationGate(self.codec, self.revocation_store(db), db)

    def rate_limiter(self, db: AsyncSession) -> RateLimiter:
        return RateLimiter(
            db,
            write_cooldown=timedelta(seconds=self.settings.WRITE_COOLDOWN_SECONDS),
            edit_cooldown=timedelta(seconds=self.settings.EDIT_COOLDOWN_SECONDS),
        )


def build_components(settings: Settings) -> Components:
    codec = TokenCodec(
        settings.SECRET_KEY,
        ttl=timedelta(seconds=settings.ACCESS_TOKEN_TTL_SECONDS),
        algorithm=settings.JWT_ALGORITHM,
    )
    return Components(settings=settings, codec=codec)
