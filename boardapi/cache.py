"""
Redis cache for board article listings.

A listing page is addressed by board and cursor (``latest``,
``before:<id>`` or ``after:<id>`` plus the page size) and stored as a
JSON array of serialised articles.  Pages are never updated in place:
any write, edit or delete on a board drops all of its pages, and the
next read repopulates them from the database.

Redis is optional.  When it cannot be reached at startup, or a command
fails later, reads count as misses and writes are skipped.
"""
import json
import logging

import redis.asyncio as redis

from boardapi.config import settings

logger = logging.getLogger(__name__)


class ListingCache:
    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    async def connect(self, url: str | None = None) -> None:
        url = url or settings.REDIS_URL
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as exc:
            logger.warning("Redis unreachable at %s, listing cache disabled: %s", url, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Listing cache connected: %s", url)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    @staticmethod
    def page_key(board_id: int, cursor: str) -> str:
        return f"boards:{board_id}:articles:{cursor}"

    async def get_page(self, board_id: int, cursor: str) -> list[dict] | None:
        """Return the cached page, or None when absent or Redis is down."""
        if not self._redis:
            self._misses += 1
            return None
        key = self.page_key(board_id, cursor)
        try:
            data = await self._redis.get(key)
        except redis.RedisError as exc:
            logger.debug("Listing cache read failed for %r: %s", key, exc)
            data = None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def store_page(
        self, board_id: int, cursor: str, items: list[dict], ttl: int | None = None
    ) -> None:
        if not self._redis:
            return
        key = self.page_key(board_id, cursor)
        try:
            await self._redis.set(key, json.dumps(items, default=str), ex=ttl)
        except redis.RedisError as exc:
            logger.debug("Listing cache write failed for %r: %s", key, exc)

    async def invalidate_board(self, board_id: int) -> None:
        """
        Drop every cached page of *board_id*.

        Call only after the mutation is committed, otherwise a concurrent
        read can cache the pre-commit rows again.
        """
        if not self._redis:
            return
        pattern = self.page_key(board_id, "*")
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Dropped %d cached page(s) of board %d", len(keys), board_id)
        except redis.RedisError as exc:
            logger.warning("Could not invalidate listing cache of board %d: %s", board_id, exc)

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "enabled": self._redis is not None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


cache = ListingCache()
