"""Report and moderation route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import moderation_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import result_response

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@router.post("/api/reports")
async def create_report(
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Report a league member.

    Body: league_id, reported_user_id, reason, description, evidence?
    """
    try:
        result = await moderation_service.create_report(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error creating report: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating report")
    return result_response(result)


@router.get("/api/reports/{report_id}")
async def get_report(
    report_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_report_detail(session, user["id"], report_id)
    )


@router.post("/api/reports/{report_id}/action")
async def take_action(
    report_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Resolve a pending report.

    Body: action (dismissed|warned|suspended|removed), reason, suspension_days?
    """
    payload = {**payload, "report_id": report_id}
    try:
        result = await moderation_service.take_moderation_action(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error taking action on report {report_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error taking moderation action")
    return result_response(result)


@router.get("/api/leagues/{league_id}/reports")
async def list_pending_reports(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_pending_reports(session, user["id"], league_id)
    )


@router.get("/api/leagues/{league_id}/reports/count")
async def count_pending_reports(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_pending_report_count(session, user["id"], league_id)
    )


@router.get("/api/leagues/{league_id}/reports/mine")
async def list_my_reports(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Reports the caller has filed in this league."""
    return result_response(
        await moderation_service.get_own_submitted_reports(session, user["id"], league_id)
    )


@router.get("/api/leagues/{league_id}/reports/mine/count")
async def count_my_reports(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_own_report_count(session, user["id"], league_id)
    )


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


@router.post("/api/leagues/{league_id}/members/{target_user_id}/lift-suspension")
async def lift_suspension(
    league_id: str,
    target_user_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await moderation_service.lift_suspension(
            session, user["id"], target_user_id, league_id
        )
    except Exception as e:
        logger.error(f"Error lifting suspension in league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error lifting suspension")
    return result_response(result)


@router.get("/api/leagues/{league_id}/members/{target_user_id}/moderation-history")
async def member_moderation_history(
    league_id: str,
    target_user_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_member_moderation_history(
            session, user["id"], target_user_id, league_id
        )
    )


@router.get("/api/leagues/{league_id}/suspended-members")
async def list_suspended_members(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_suspended_members(session, user["id"], league_id)
    )


@router.get("/api/leagues/{league_id}/moderation/mine")
async def my_moderation_history(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Actions taken against the caller, plus current suspension state."""
    return result_response(
        await moderation_service.get_own_moderation_history(session, user["id"], league_id)
    )


@router.get("/api/leagues/{league_id}/moderation/mine/warnings")
async def my_warning_count(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.get_own_warning_count(session, user["id"], league_id)
    )


@router.post("/api/moderation-actions/{action_id}/acknowledge")
async def acknowledge_action(
    action_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await moderation_service.acknowledge_moderation_action(session, user["id"], action_id)
    )
