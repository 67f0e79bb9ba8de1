"""
User service — registration, lookup and account removal.

Users are fetched without caching because the list is typically small
and the data changes infrequently.
"""
import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from boardapi.errors import Conflict, Forbidden, NotFound
from boardapi.models import User
from boardapi.passwords import hash_password
from boardapi.schemas import SignUpUser

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def find_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    """Like ``find_user_by_username`` but raises ``NotFound`` on a miss."""
    user = await find_user_by_username(db, username)
    if user is None:
        raise NotFound("User not found")
    return user


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users ordered by creation date (newest first)."""
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return [_user_to_dict(u) for u in result.scalars().all()]


async def get_profile(db: AsyncSession, username: str) -> dict:
    return _user_to_dict(await get_user_by_username(db, username))


async def create_user(db: AsyncSession, data: SignUpUser) -> dict:
    """
    Register a new user with a hashed password and the default role.

    Username and email uniqueness is checked up front so the common case
    returns a clean ``Conflict``; the unique constraints in the schema
    still back this up under concurrent sign-ups.
    """
    existing = await db.execute(
        select(User.id).where(or_(User.username == data.username, User.email == data.email))
    )
    if existing.first() is not None:
        raise Conflict("A user with this username or email already exists")

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        role="USER",
    )
    db.add(user)
    await db.flush()
    logger.info("User registered: %s", user.username)
    return _user_to_dict(user)


async def delete_user(db: AsyncSession, user_id: int, requested_by: str) -> None:
    """
    Remove the account *user_id*.

    Only the account owner may delete it.  Their articles stay on the
    boards with the author link cleared.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.username != requested_by:
        raise Forbidden("Users may only delete their own account")

    await db.delete(user)
    await db.flush()
    logger.info("User deleted: %s", requested_by)
