"""Admin route handlers: limit overrides."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import limits_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_admin(user: dict) -> None:
    if not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Admin access required")


@router.get("/api/admin/limit-overrides")
async def list_limit_overrides(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    _require_admin(user)
    return result_response(await limits_service.list_limit_overrides(session, user["id"]))


@router.put("/api/admin/limit-overrides")
async def set_limit_override(
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create or replace an override.

    Body: limit_type, exactly one of user_id/league_id, limit_value (null = unlimited), reason?
    """
    _require_admin(user)
    try:
        result = await limits_service.set_limit_override(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error setting limit override: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error setting limit override")
    return result_response(result)


@router.delete("/api/admin/limit-overrides/{override_id}")
async def clear_limit_override(
    override_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    _require_admin(user)
    return result_response(
        await limits_service.clear_limit_override(session, user["id"], override_id)
    )
