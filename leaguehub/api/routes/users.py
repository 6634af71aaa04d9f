"""Current-user and account route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import invitation_service, league_service, limits_service, user_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/users")
async def create_user(
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Sync an account from the identity provider (admin only)."""
    if not user["is_admin"]:
        raise HTTPException(status_code=403, detail="Only administrators can create users")
    try:
        result = await user_service.create_user(session, payload)
    except Exception as e:
        logger.error(f"Error creating user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating user")
    return result_response(result)


@router.get("/api/users/me")
async def get_me(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await user_service.get_user(session, user["id"]))


@router.get("/api/users/me/usage")
async def get_my_usage(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """League membership quota for the current user."""
    return result_response(await limits_service.get_usage(session, user["id"]))


@router.get("/api/users/me/leagues")
async def get_my_leagues(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await league_service.get_user_leagues(session, user["id"])
    except Exception as e:
        logger.error(f"Error getting user leagues: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error getting leagues")
    return result_response(result)


@router.get("/api/users/me/archived-leagues")
async def get_my_archived_leagues(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await league_service.get_archived_leagues(session, user["id"]))


@router.get("/api/users/me/invitations")
async def get_my_invitations(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Pending direct invitations addressed to the current user."""
    return result_response(
        await invitation_service.get_user_pending_invitations(session, user["id"])
    )
