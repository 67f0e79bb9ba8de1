"""
Per-author write/edit cooldowns.

The decision functions only read article history; they never write.  On
their own they are racy (two requests can both pass before either
inserts), so callers must run check and mutation inside
``AuthorLocks.hold`` and commit before leaving it.
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.clock import as_utc
from boardapi.models import Article, User

logger = logging.getLogger(__name__)


class AuthorLocks:
    """
    Registry of one ``asyncio.Lock`` per author id.

    Locks are held weakly, so an author with no request in flight costs
    nothing.  This serializes requests within one process; ``hold`` also
    takes a row lock on the author so separate workers sharing PostgreSQL
    queue behind each other as well.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, author_id: int) -> asyncio.Lock:
        lock = self._locks.get(author_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[author_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, db: AsyncSession, author_id: int):
        lock = self.lock_for(author_id)
        async with lock:
            # SELECT ... FOR UPDATE; a no-op on SQLite, which has a single writer anyway.
            await db.execute(select(User.id).where(User.id == author_id).with_for_update())
            yield


class RateLimiter:
    def __init__(
        self,
        db: AsyncSession,
        write_cooldown: timedelta = timedelta(minutes=5),
        edit_cooldown: timedelta = timedelta(minutes=10),
    ) -> None:
        self.db = db
        self.write_cooldown = write_cooldown
        self.edit_cooldown = edit_cooldown

    async def find_most_recent_article(self, author_id: int) -> Article | None:
        result = await self.db.execute(
            select(Article)
            .where(Article.author_id == author_id, Article.is_deleted.is_(False))
            .order_by(Article.created_at.desc(), Article.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def can_write(self, author_id: int, now: datetime) -> bool:
        latest = await self.find_most_recent_article(author_id)
        if latest is None:
            return True
        allowed = as_utc(latest.created_at) < now - self.write_cooldown
        if not allowed:
            logger.info("Write cooldown active for author %d", author_id)
        return allowed

    async def find_article(self, article_id: int) -> Article | None:
        # populate_existing: an instance loaded before the author lock was
        # taken may carry a stale updated_at.
        result = await self.db.execute(
            select(Article)
            .where(Article.id == article_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def can_edit(self, article_id: int, now: datetime) -> bool:
        article = await self.find_article(article_id)
        # Absent or soft-deleted: deny; the caller reports not-found separately.
        if article is None or article.is_deleted:
            return False
        if article.updated_at is None:
            return True
        allowed = as_utc(article.updated_at) < now - self.edit_cooldown
        if not allowed:
            logger.info("Edit cooldown active for article %d", article_id)
        return allowed
