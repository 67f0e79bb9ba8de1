import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.bootstrap import Components
from boardapi.database import get_db
from boardapi.dependencies import get_components, require_auth
from boardapi.errors import AuthError, MalformedToken
from boardapi.schemas import LoginRequest, SignUpUser, TokenResponse, UserResponse
from boardapi.services import user_service
from boardapi.services.auth_service import AuthContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _clear_auth_cookie(response: Response, components: Components) -> None:
    response.set_cookie(
        components.settings.AUTH_COOKIE_NAME,
        "",
        max_age=0,
        path="/",
        httponly=True,
    )


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return await user_service.get_users(db)


@router.get("/me", response_model=UserResponse)
async def me(
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return await user_service.get_profile(db, auth.subject)


@router.post("/signUp", status_code=201, response_model=UserResponse)
async def sign_up(data: SignUpUser, db: AsyncSession = Depends(get_db)):
    return await user_service.create_user(db, data)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    await user_service.delete_user(db, user_id, requested_by=auth.subject)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    components: Components = Depends(get_components),
):
    issued = await components.gate(db).login(data.username, data.password, components.clock())
    response.set_cookie(
        components.settings.AUTH_COOKIE_NAME,
        issued.token,
        max_age=issued.max_age,
        path="/",
        httponly=True,
    )
    return {"token": issued.token}


@router.post("/token/validation", status_code=200)
async def validate_token(
    token: str = Query(...),
    db: AsyncSession = Depends(get_db),
    components: Components = Depends(get_components),
):
    try:
        await components.gate(db).authenticate(token, components.clock())
    except AuthError as exc:
        # Every rejection of a presented token answers 403 here.
        raise MalformedToken(exc.detail) from exc
    return {"detail": "Token is valid"}


@router.post("/logout", status_code=200)
async def logout(response: Response, components: Components = Depends(get_components)):
    """Forget the session cookie.  The token itself stays valid until it expires."""
    _clear_auth_cookie(response, components)
    return {"detail": "Logged out"}


@router.post("/logout/all", status_code=200)
async def logout_all(
    request: Request,
    response: Response,
    request_token: str | None = Query(None, alias="requestToken"),
    db: AsyncSession = Depends(get_db),
    components: Components = Depends(get_components),
):
    """Revoke the presented token (best effort) and clear the session cookie."""
    token = request_token or request.cookies.get(components.settings.AUTH_COOKIE_NAME)
    revoked = await components.gate(db).logout_all(token, components.clock())
    _clear_auth_cookie(response, components)
    return {"detail": "Logged out from all sessions", "revoked": revoked}
