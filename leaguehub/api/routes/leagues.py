"""League route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import league_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues")
async def create_league(
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a new league. The creator becomes its first executive.

    Body: name, description?, logo?, visibility (public|private).
    """
    try:
        result = await league_service.create_league(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error creating league: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating league")
    return result_response(result)


@router.get("/api/leagues/search")
async def search_leagues(
    query: str = Query(""),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Search public, active leagues by name or description."""
    return result_response(
        await league_service.search_public_leagues(session, query, user["id"])
    )


@router.get("/api/leagues/{league_id}")
async def get_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """League details with the caller's role and member count."""
    try:
        result = await league_service.get_league_with_role(session, league_id, user["id"])
    except Exception as e:
        logger.error(f"Error getting league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error getting league")
    return result_response(result)


@router.patch("/api/leagues/{league_id}")
async def update_league(
    league_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await league_service.update_league(session, league_id, payload, user["id"])
    except Exception as e:
        logger.error(f"Error updating league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating league")
    return result_response(result)


@router.post("/api/leagues/{league_id}/archive")
async def archive_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await league_service.archive_league(session, league_id, user["id"]))


@router.post("/api/leagues/{league_id}/unarchive")
async def unarchive_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await league_service.unarchive_league(session, league_id, user["id"]))


@router.get("/api/leagues/{league_id}/archived")
async def get_archived_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Archived league details (executives only)."""
    return result_response(
        await league_service.get_archived_league(session, league_id, user["id"])
    )


@router.delete("/api/leagues/{league_id}")
async def delete_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Permanently delete a league and everything it owns."""
    try:
        result = await league_service.delete_league(session, league_id, user["id"])
    except Exception as e:
        logger.error(f"Error deleting league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting league")
    return result_response(result)


@router.post("/api/leagues/{league_id}/join")
async def join_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Join a public league."""
    try:
        result = await league_service.join_public_league(session, league_id, user["id"])
    except Exception as e:
        logger.error(f"Error joining league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error joining league")
    return result_response(result)


@router.post("/api/leagues/{league_id}/leave")
async def leave_league(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await league_service.leave_league(session, league_id, user["id"]))
