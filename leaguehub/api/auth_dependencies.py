"""
Authentication dependencies for FastAPI routes.

Identity is established by the upstream gateway, which forwards the
authenticated user id in a trusted header.
"""

import os

from fastapi import Depends, Header, HTTPException, status
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import user_service

AUTH_USER_HEADER = os.getenv("AUTH_USER_HEADER", "X-User-Id")


def _header_user_id(
    user_id: Optional[str] = Header(default=None, alias=AUTH_USER_HEADER),
) -> Optional[str]:
    return user_id.strip() if user_id else None


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    user_id: Optional[str] = Depends(_header_user_id),
) -> dict:
    """
    Dependency to get the current authenticated user.

    Returns:
        User dictionary with id, name, username and is_admin

    Raises:
        HTTPException: 401 if the header is missing or the user is unknown
    """
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await user_service.get_user_by_id(session, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "is_admin": user.is_admin,
    }


async def get_current_user_optional(
    session: AsyncSession = Depends(get_db_session),
    user_id: Optional[str] = Depends(_header_user_id),
) -> Optional[dict]:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if not user_id:
        return None
    user = await user_service.get_user_by_id(session, user_id)
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "is_admin": user.is_admin,
    }
