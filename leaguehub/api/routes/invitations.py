"""Invitation and invite link route handlers."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import get_db_session
from leaguehub.services import invitation_service
from leaguehub.api.auth_dependencies import get_current_user
from leaguehub.api.routes import limiter, result_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues/{league_id}/invitations")
async def invite_user(
    league_id: str,
    payload: Dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Invite an existing user directly.

    Body: invitee_user_id, role?, expires_in_days?
    """
    payload = {**payload, "league_id": league_id}
    try:
        result = await invitation_service.invite_user(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error inviting user to league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error sending invitation")
    return result_response(result)


@router.post("/api/leagues/{league_id}/invite-links")
async def create_invite_link(
    league_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Generate a shareable invite link.

    Body: role?, expires_in_days?, max_uses?
    """
    payload = {**(payload or {}), "league_id": league_id}
    try:
        result = await invitation_service.generate_invite_link(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error creating invite link for league {league_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating invite link")
    return result_response(result)


@router.get("/api/leagues/{league_id}/invitations")
async def list_league_invitations(
    league_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await invitation_service.get_league_pending_invitations(session, league_id, user["id"])
    )


@router.post("/api/invitations/{invitation_id}/accept")
async def accept_invitation(
    invitation_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await invitation_service.accept_invitation(session, invitation_id, user["id"])
    except Exception as e:
        logger.error(f"Error accepting invitation {invitation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error accepting invitation")
    return result_response(result)


@router.post("/api/invitations/{invitation_id}/decline")
async def decline_invitation(
    invitation_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return result_response(
        await invitation_service.decline_invitation(session, invitation_id, user["id"])
    )


@router.delete("/api/invitations/{invitation_id}")
async def cancel_invitation(
    invitation_id: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel a pending invitation or revoke an invite link."""
    return result_response(
        await invitation_service.cancel_invitation(session, invitation_id, user["id"])
    )


@router.get("/api/invite/{token}")
async def get_invite_link(token: str, session: AsyncSession = Depends(get_db_session)):
    """Public preview of an invite link; reports why it is unusable if it is."""
    return result_response(await invitation_service.get_invite_link_details(session, token))


@router.post("/api/invite/{token}/join")
@limiter.limit("10/minute")
async def join_via_invite_link(
    request: Request,
    token: str,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Redeem an invite link."""
    try:
        result = await invitation_service.join_via_invite_link(session, token, user["id"])
    except Exception as e:
        logger.error(f"Error redeeming invite link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error joining league")
    return result_response(result)
