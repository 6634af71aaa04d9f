"""Team route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import team_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues/{league_id}/teams")
async def create_team(
    league_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a team; the caller becomes its manager."""
    try:
        result = await team_service.create_team(session, league_id, payload, user["id"])
    except Exception as e:
        logger.error(f"Error creating team in league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating team")
    return result_response(result)


@router.get("/api/leagues/{league_id}/teams")
async def list_teams(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await team_service.get_league_teams(session, league_id, user["id"]))


@router.get("/api/leagues/{league_id}/teams/mine")
async def list_my_teams(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await team_service.get_my_teams(session, league_id, user["id"]))


@router.get("/api/teams/{team_id}")
async def get_team(
    team_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await team_service.get_team(session, team_id, user["id"]))


@router.patch("/api/teams/{team_id}")
async def update_team(
    team_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await team_service.update_team(session, team_id, payload, user["id"])
    except Exception as e:
        logger.error(f"Error updating team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating team")
    return result_response(result)


@router.post("/api/teams/{team_id}/archive")
async def archive_team(
    team_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await team_service.archive_team(session, team_id, user["id"]))


@router.post("/api/teams/{team_id}/unarchive")
async def unarchive_team(
    team_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await team_service.unarchive_team(session, team_id, user["id"]))


@router.delete("/api/teams/{team_id}")
async def delete_team(
    team_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await team_service.delete_team(session, team_id, user["id"])
    except Exception as e:
        logger.error(f"Error deleting team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting team")
    return result_response(result)


@router.post("/api/teams/{team_id}/members")
async def add_team_member(
    team_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Body: exactly one of user_id or placeholder_member_id."""
    return result_response(
        await team_service.add_team_member(session, team_id, payload, user["id"])
    )


@router.delete("/api/team-members/{team_member_id}")
async def remove_team_member(
    team_member_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await team_service.remove_team_member(session, team_member_id, user["id"])
    )


@router.post("/api/teams/{team_id}/leave")
async def leave_team(
    team_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await team_service.leave_team(session, team_id, user["id"]))
