"""Board service — boards are plain containers for articles."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.errors import Conflict, NotFound
from boardapi.models import Board
from boardapi.schemas import BoardCreate


def _board_to_dict(board: Board) -> dict:
    return {
        "id": board.id,
        "title": board.title,
        "description": board.description,
        "created_at": board.created_at.isoformat() if board.created_at else None,
    }


async def get_board(db: AsyncSession, board_id: int) -> Board:
    board = await db.get(Board, board_id)
    if board is None:
        raise NotFound("Board not found")
    return board


async def get_boards(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Board).order_by(Board.id))
    return [_board_to_dict(b) for b in result.scalars().all()]


async def create_board(db: AsyncSession, data: BoardCreate) -> dict:
    existing = await db.execute(select(Board.id).where(Board.title == data.title))
    if existing.first() is not None:
        raise Conflict("A board with this title already exists")

    board = Board(title=data.title, description=data.description)
    db.add(board)
    await db.flush()
    return _board_to_dict(board)
