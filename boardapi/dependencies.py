from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.bootstrap import Components
from boardapi.database import get_db
from boardapi.services.auth_service import AuthContext


def get_components(request: Request) -> Components:
    return request.app.state.components


def extract_credential(request: Request, components: Components) -> str | None:
    """
    Return the bearer token presented with *request*, if any.

    An ``Authorization: Bearer`` header takes precedence over the session
    cookie.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(components.settings.AUTH_COOKIE_NAME) or None


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
    components: Components = Depends(get_components),
) -> AuthContext:
    """
    FastAPI dependency guarding authenticated routes.

    Authentication errors propagate as ``BoardError`` subclasses, so the
    handler never runs for a rejected request.
    """
    token = extract_credential(request, components)
    return await components.gate(db).authenticate(token, components.clock())


class ArticleCursorParams:
    """
    Keyset pagination parameters for a board listing.

    Attributes
    ----------
    last_id:
        Return articles older than this id (scrolling down).
    first_id:
        Return articles newer than this id (polling for new posts).
    """

    def __init__(
        self,
        last_id: int | None = Query(
            None, alias="lastId", ge=1, description="Return articles older than this id."
        ),
        first_id: int | None = Query(
            None, alias="firstId", ge=1, description="Return articles newer than this id."
        ),
    ) -> None:
        self.last_id = last_id
        self.first_id = first_id
