from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.database import get_db
from boardapi.dependencies import require_auth
from boardapi.schemas import BoardCreate, BoardResponse
from boardapi.services import board_service
from boardapi.services.auth_service import AuthContext

router = APIRouter(prefix="/api/boards", tags=["boards"])


@router.get("", response_model=list[BoardResponse])
async def list_boards(
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return await board_service.get_boards(db)


@router.post("", status_code=201, response_model=BoardResponse)
async def create_board(
    data: BoardCreate,
    db: AsyncSession = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return await board_service.create_board(db, data)
