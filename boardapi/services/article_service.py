"""
Article service — business logic for articles within a board.

Design notes
------------
- Every query is soft-delete aware: an article with ``is_deleted`` set
  is invisible to listings, edits, deletes and the write cooldown.
- Writes and edits run their cooldown check, the mutation and the commit
  inside ``AuthorLocks.hold`` for the acting author.  Committing before
  the lock is released is what closes the check-then-write race; the
  surrounding ``get_db`` commit then has nothing left to do.
- Board listings are keyset-paginated by id (``lastId`` for older pages,
  ``firstId`` for newer) and read through the Redis cache.  Every mutation
  commits first and then invalidates all cached pages of its board.
"""
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from boardapi.cache import cache
from boardapi.config import settings
from boardapi.errors import Forbidden, NotFound, RateLimited
from boardapi.models import Article, User
from boardapi.schemas import EditArticle, WriteArticle
from boardapi.services.auth_service import AuthContext
from boardapi.services.board_service import get_board
from boardapi.services.rate_limiter import AuthorLocks, RateLimiter
from boardapi.services.user_service import get_user_by_username

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _article_to_dict(article: Article, author: User | None = None) -> dict:
    author = author if author is not None else article.author
    return {
        "id": article.id,
        "title": article.title,
        "content": article.content,
        "board_id": article.board_id,
        "author_id": article.author_id,
        "author_username": author.username if author is not None else None,
        "created_at": article.created_at.isoformat() if article.created_at else None,
        "updated_at": article.updated_at.isoformat() if article.updated_at else None,
    }


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------

async def _get_live_article(db: AsyncSession, board_id: int, article_id: int) -> Article:
    """
    Return the non-deleted article *article_id*.

    Raises ``NotFound`` when it is missing or soft-deleted and ``Forbidden``
    when it exists on a different board than the one addressed.
    """
    result = await db.execute(
        select(Article)
        .where(Article.id == article_id)
        .execution_options(populate_existing=True)
    )
    article = result.scalar_one_or_none()
    if article is None or article.is_deleted:
        raise NotFound("Article not found")
    if article.board_id != board_id:
        raise Forbidden("Article does not belong to this board")
    return article


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_articles(
    db: AsyncSession,
    board_id: int,
    last_id: int | None = None,
    first_id: int | None = None,
    page_size: int | None = None,
) -> list[dict]:
    """
    Return up to *page_size* live articles of *board_id*, newest first.

    With *last_id* only articles older than it (id < last_id) are returned;
    with *first_id* only newer ones (id > first_id).  *last_id* wins when
    both are given.
    """
    page_size = page_size or settings.ARTICLE_PAGE_SIZE
    await get_board(db, board_id)

    if last_id is not None:
        cursor = f"before:{last_id}:{page_size}"
    elif first_id is not None:
        cursor = f"after:{first_id}:{page_size}"
    else:
        cursor = f"latest:{page_size}"
    cached = await cache.get_page(board_id, cursor)
    if cached is not None:
        return cached

    q = (
        select(Article)
        .where(Article.board_id == board_id, Article.is_deleted.is_(False))
        .options(joinedload(Article.author))
    )
    if last_id is not None:
        q = q.where(Article.id < last_id)
    elif first_id is not None:
        q = q.where(Article.id > first_id)
    q = q.order_by(Article.created_at.desc(), Article.id.desc()).limit(page_size)

    result = await db.execute(q)
    items = [_article_to_dict(a) for a in result.unique().scalars().all()]
    await cache.store_page(board_id, cursor, items, ttl=settings.CACHE_TTL_LIST)
    return items


async def write_article(
    db: AsyncSession,
    auth: AuthContext,
    board_id: int,
    data: WriteArticle,
    now: datetime,
    limiter: RateLimiter,
    locks: AuthorLocks,
) -> dict:
    """
    Create an article on *board_id* as the authenticated user.

    Raises ``RateLimited`` when the author's previous live article is
    younger than the write cooldown.
    """
    author = await get_user_by_username(db, auth.subject)
    await get_board(db, board_id)

    async with locks.hold(db, author.id):
        if not await limiter.can_write(author.id, now):
            raise RateLimited("Article writing is restricted by rate limit")

        article = Article(
            title=data.title,
            content=data.content,
            author_id=author.id,
            board_id=board_id,
            created_at=now,
        )
        db.add(article)
        await db.flush()
        await db.commit()

    logger.info("Article %d written by %s on board %d", article.id, author.username, board_id)
    await cache.invalidate_board(board_id)
    return _article_to_dict(article, author)


async def edit_article(
    db: AsyncSession,
    auth: AuthContext,
    board_id: int,
    article_id: int,
    data: EditArticle,
    now: datetime,
    limiter: RateLimiter,
    locks: AuthorLocks,
) -> dict:
    """
    Apply the fields set in *data* to an article owned by the caller.

    Order of checks: board exists, article exists and lives on the board,
    caller owns it, edit cooldown has elapsed.
    """
    author = await get_user_by_username(db, auth.subject)
    await get_board(db, board_id)

    async with locks.hold(db, author.id):
        article = await _get_live_article(db, board_id, article_id)
        if article.author_id != author.id:
            raise Forbidden("Only the author can edit this article")
        if not await limiter.can_edit(article_id, now):
            raise RateLimited("Article editing is restricted by rate limit")

        if data.title is not None:
            article.title = data.title
        if data.content is not None:
            article.content = data.content
        article.updated_at = now
        await db.flush()
        await db.commit()

    logger.info("Article %d edited by %s", article.id, author.username)
    await cache.invalidate_board(board_id)
    return _article_to_dict(article, author)


async def delete_article(
    db: AsyncSession, auth: AuthContext, board_id: int, article_id: int
) -> None:
    """
    Soft-delete an article owned by the caller.  The row is kept.

    Commits before invalidating the board cache, like the write and edit
    paths, so no listing can re-cache the article in between.
    """
    author = await get_user_by_username(db, auth.subject)
    await get_board(db, board_id)

    article = await _get_live_article(db, board_id, article_id)
    if article.author_id != author.id:
        raise Forbidden("Only the author can delete this article")

    article.is_deleted = True
    await db.commit()
    logger.info("Article %d deleted by %s", article.id, author.username)
    await cache.invalidate_board(board_id)
