"""League membership route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import member_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/leagues/{league_id}/members")
async def list_members(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await member_service.get_league_members(session, league_id, user["id"])
    except Exception as e:
        logger.error(f"Error listing members of league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error listing members")
    return result_response(result)


@router.get("/api/leagues/{league_id}/members/search")
async def search_users_to_invite(
    league_id: str,
    query: str = Query(""),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Users matching the query who are not yet in the league."""
    return result_response(
        await member_service.search_users_for_invite(session, league_id, query, user["id"])
    )


@router.delete("/api/leagues/{league_id}/members/{target_user_id}")
async def remove_member(
    league_id: str,
    target_user_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await member_service.remove_member(
            session, league_id, target_user_id, user["id"]
        )
    except Exception as e:
        logger.error(f"Error removing member from league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error removing member")
    return result_response(result)


@router.put("/api/leagues/{league_id}/members/{target_user_id}/role")
async def update_member_role(
    league_id: str,
    target_user_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Body: role (member|manager|executive)."""
    payload = {**payload, "target_user_id": target_user_id}
    try:
        result = await member_service.update_member_role(session, league_id, payload, user["id"])
    except Exception as e:
        logger.error(f"Error updating role in league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating member role")
    return result_response(result)
