"""Notification route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import notification_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/notifications")
async def get_notifications(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Pending invitations and unacknowledged moderation actions, newest first."""
    try:
        result = await notification_service.get_notifications(session, user["id"])
    except Exception as e:
        logger.error(f"Error getting notifications: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error getting notifications")
    return result_response(result)


@router.get("/api/notifications/count")
async def get_notification_count(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(await notification_service.get_notification_count(session, user["id"]))
