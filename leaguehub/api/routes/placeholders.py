"""Placeholder member route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import placeholder_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues/{league_id}/placeholders")
async def create_placeholder(
    league_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Body: display_name."""
    try:
        result = await placeholder_service.create_placeholder(
            session, league_id, payload, user["id"]
        )
    except Exception as e:
        logger.error(f"Error creating placeholder in league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating placeholder member")
    return result_response(result)


@router.get("/api/leagues/{league_id}/placeholders")
async def list_placeholders(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await placeholder_service.get_placeholders(session, league_id, user["id"])
    )


@router.get("/api/leagues/{league_id}/placeholders/retired")
async def list_retired_placeholders(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await placeholder_service.get_retired_placeholders(session, league_id, user["id"])
    )


@router.patch("/api/placeholders/{placeholder_id}")
async def update_placeholder(
    placeholder_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await placeholder_service.update_placeholder(session, placeholder_id, payload, user["id"])
    )


@router.post("/api/placeholders/{placeholder_id}/retire")
async def retire_placeholder(
    placeholder_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await placeholder_service.retire_placeholder(session, placeholder_id, user["id"])
    )


@router.post("/api/placeholders/{placeholder_id}/restore")
async def restore_placeholder(
    placeholder_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await placeholder_service.restore_placeholder(session, placeholder_id, user["id"])
    )


@router.post("/api/placeholders/{placeholder_id}/link")
async def link_placeholder(
    placeholder_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Body: user_id of the league member the placeholder stood in for."""
    target_user_id = payload.get("user_id")
    if not target_user_id:
        raise HTTPException(status_code=422, detail="user_id is required")
    return result_response(
        await placeholder_service.link_placeholder(
            session, placeholder_id, target_user_id, user["id"]
        )
    )
