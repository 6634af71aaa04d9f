"""Game type route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import game_type_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues/{league_id}/game-types")
async def create_game_type(
    league_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a game type.

    Body: name, description?, logo?, category, config (shape depends on category).
    """
    try:
        result = await game_type_service.create_game_type(
            session, league_id, payload, user["id"]
        )
    except Exception as e:
        logger.error(f"Error creating game type in league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating game type")
    return result_response(result)


@router.get("/api/leagues/{league_id}/game-types")
async def list_game_types(
    league_id: str,
    include_archived: bool = Query(False),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await game_type_service.get_league_game_types(
            session, league_id, user["id"], include_archived=include_archived
        )
    )


@router.get("/api/game-types/{game_type_id}")
async def get_game_type(
    game_type_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await game_type_service.get_game_type(session, game_type_id, user["id"])
    )


@router.patch("/api/game-types/{game_type_id}")
async def update_game_type(
    game_type_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await game_type_service.update_game_type(
            session, game_type_id, payload, user["id"]
        )
    except Exception as e:
        logger.error(f"Error updating game type {game_type_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating game type")
    return result_response(result)


@router.post("/api/game-types/{game_type_id}/archive")
async def archive_game_type(
    game_type_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await game_type_service.archive_game_type(session, game_type_id, user["id"])
    )


@router.post("/api/game-types/{game_type_id}/unarchive")
async def unarchive_game_type(
    game_type_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await game_type_service.unarchive_game_type(session, game_type_id, user["id"])
    )


@router.delete("/api/game-types/{game_type_id}")
async def delete_game_type(
    game_type_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await game_type_service.delete_game_type(session, game_type_id, user["id"])
    )
