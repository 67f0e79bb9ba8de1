from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.bootstrap import Components
from boardapi.database import get_db
from boardapi.dependencies import ArticleCursorParams, get_components, require_auth
from boardapi.schemas import ArticleResponse, EditArticle, WriteArticle
from boardapi.services import article_service
from boardapi.services.auth_service import AuthContext

router = APIRouter(prefix="/api/boards/{board_id}/articles", tags=["articles"])


@router.get("", response_model=list[ArticleResponse])
async def list_articles(
    board_id: int,
    cursor: ArticleCursorParams = Depends(),
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return await article_service.get_articles(
        db, board_id, last_id=cursor.last_id, first_id=cursor.first_id
    )


@router.post("", status_code=201, response_model=ArticleResponse)
async def write_article(
    board_id: int,
    data: WriteArticle,
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    components: Components = Depends(get_components),
):
    return await article_service.write_article(
        db,
        auth,
        board_id,
        data,
        now=components.clock(),
        limiter=components.rate_limiter(db),
        locks=components.author_locks,
    )


@router.put("/{article_id}", response_model=ArticleResponse)
async def edit_article(
    board_id: int,
    article_id: int,
    data: EditArticle,
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    components: Components = Depends(get_components),
):
    return await article_service.edit_article(
        db,
        auth,
        board_id,
        article_id,
        data,
        now=components.clock(),
        limiter=components.rate_limiter(db),
        locks=components.author_locks,
    )


@router.delete("/{article_id}", status_code=204)
async def delete_article(
    board_id: int,
    article_id: int,
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    await article_service.delete_article(db, auth, board_id, article_id)
