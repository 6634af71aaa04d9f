"""
User service: account rows synced from the upstream identity provider,
lookups and invite search.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import atomic
from leaguehub.database.models import User
from leaguehub.models.schemas import UserCreate, UserSummary
from leaguehub.services.result import ServiceError, parse_input, service_operation
from leaguehub.utils.constants import USER_SEARCH_RESULT_LIMIT

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def get_user_by_id(session: AsyncSession, user_id: str) -> Optional[User]:
    """Active user by id. Soft-deleted accounts are treated as missing."""
    if not user_id:
        return None
    result = await session.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def require_user(session: AsyncSession, user_id: str) -> User:
    user = await get_user_by_id(session, user_id)
    if not user:
        raise ServiceError("User not found")
    return user


async def get_user_names(session: AsyncSession, user_ids: Iterable[str]) -> Dict[str, str]:
    """Map user id -> display name for a batch of ids."""
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    result = await session.execute(select(User.id, User.name).where(User.id.in_(ids)))
    return {row.id: row.name for row in result.all()}


@service_operation
async def create_user(session: AsyncSession, payload) -> Dict:
    """
    Create a user account.

    Raises ServiceError (as a failure result) if the username or email is taken.
    """
    data = parse_input(UserCreate, payload)

    existing = await session.execute(
        select(User.username, User.email).where(
            or_(
                func.lower(User.username) == data.username.lower(),
                func.lower(User.email) == data.email.lower(),
            )
        )
    )
    row = existing.first()
    if row:
        if row.username.lower() == data.username.lower():
            raise ServiceError("Validation failed", {"username": "Username is already taken"})
        raise ServiceError("Validation failed", {"email": "Email is already registered"})

    user = User(
        name=data.name,
        username=data.username,
        email=data.email.lower(),
        image=data.image,
        is_admin=data.is_admin,
    )
    try:
        async with atomic(session):
            session.add(user)
    except IntegrityError:
        logger.warning("Concurrent signup conflict for username %s", data.username)
        raise ServiceError("Username or email is already taken")

    logger.info("Created user %s (%s)", user.id, user.username)
    return UserSummary.model_validate(user).model_dump()


@service_operation
async def get_user(session: AsyncSession, user_id: str) -> Dict:
    user = await require_user(session, user_id)
    return UserSummary.model_validate(user).model_dump()


async def search_users(
    session: AsyncSession,
    query: str,
    exclude_user_ids: Optional[Iterable[str]] = None,
    limit: int = USER_SEARCH_RESULT_LIMIT,
) -> List[Dict]:
    """Case-insensitive name/username search over active users."""
    pattern = f"%{_escape_like(query.lower())}%"
    stmt = (
        select(User)
        .where(
            User.deleted_at.is_(None),
            or_(
                func.lower(User.name).like(pattern, escape="\\"),
                func.lower(User.username).like(pattern, escape="\\"),
            ),
        )
        .order_by(User.name)
        .limit(limit)
    )
    excluded = [uid for uid in (exclude_user_ids or []) if uid]
    if excluded:
        stmt = stmt.where(User.id.notin_(excluded))
    result = await session.execute(stmt)
    return [UserSummary.model_validate(u).model_dump() for u in result.scalars().all()]
