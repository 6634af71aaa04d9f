"""
Invitation service: direct invitations and shareable invite links.

Direct invitations move pending -> accepted | declined | expired, or are
deleted on cancel. Link invitations stay pending and are consumed up to
max_uses or until expires_at. Expiry is evaluated lazily on access.
"""

import logging
import os
import secrets
from typing import Dict, List, Optional

from sqlalchemy import select, update, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from leaguehub.database.db import atomic
from leaguehub.database.models import (
    InvitationStatus,
    League,
    LeagueInvitation,
    LeagueMemberRole,
    User,
)
from leaguehub.models.schemas import (
    InvitationResponse,
    InviteLinkCreate,
    InviteUserRequest,
)
from leaguehub.services import league_service, limits_service, member_service, user_service
from leaguehub.services.permissions import LeagueAction
from leaguehub.services.result import (
    AlreadyMemberError,
    ServiceError,
    parse_input,
    service_operation,
)
from leaguehub.services.roles import get_assignable_roles
from leaguehub.utils.datetime_utils import days_from_now, has_passed, utcnow

logger = logging.getLogger(__name__)

FRONTEND_BASE_URL = os.getenv("FRONTEND_URL", "https://leaguehub.app")

INVITATION_NOT_FOUND = "Invitation not found"
NOT_FOR_YOU = "This invitation is not for you"
NO_LONGER_PENDING = "This invitation is no longer pending"
DUPLICATE_PENDING = "User already has a pending invitation to this league"
LINK_NOT_FOUND = "Invite link not found"
LINK_INACTIVE = "This invite link is no longer active"
LINK_EXPIRED = "This invite link has expired"
LINK_EXHAUSTED = "This invite link has reached its maximum uses"


def build_invite_url(token: str) -> str:
    return f"{FRONTEND_BASE_URL}/invite/{token}"


def generate_invite_token() -> str:
    """Unguessable URL-safe token; it is the only credential for the link."""
    return secrets.token_urlsafe(32)


def invitation_to_dict(invitation: LeagueInvitation, **extra) -> Dict:
    data = InvitationResponse.model_validate(invitation).model_dump()
    if invitation.token:
        data["invite_url"] = build_invite_url(invitation.token)
    data.update(extra)
    return data


async def get_invitation(session: AsyncSession, invitation_id: str) -> Optional[LeagueInvitation]:
    if not invitation_id:
        return None
    return await session.get(LeagueInvitation, invitation_id)


async def get_invitation_by_token(session: AsyncSession, token: str) -> Optional[LeagueInvitation]:
    if not token:
        return None
    result = await session.execute(
        select(LeagueInvitation).where(LeagueInvitation.token == token)
    )
    return result.scalar_one_or_none()


async def get_pending_invitation(
    session: AsyncSession, league_id: str, invitee_user_id: str
) -> Optional[LeagueInvitation]:
    result = await session.execute(
        select(LeagueInvitation).where(
            LeagueInvitation.league_id == league_id,
            LeagueInvitation.invitee_user_id == invitee_user_id,
            LeagueInvitation.status == InvitationStatus.PENDING.value,
        )
    )
    return result.scalar_one_or_none()


async def _expire(session: AsyncSession, invitation: LeagueInvitation) -> None:
    invitation.status = InvitationStatus.EXPIRED.value
    await session.flush()
    logger.info("Invitation %s expired", invitation.id)


async def validate_invite_permissions(
    session: AsyncSession, inviter_id: str, league_id: str, role: LeagueMemberRole
):
    """The inviter must hold INVITE_MEMBERS and may not invite above their own rank."""
    membership = await member_service.require_permission(
        session, inviter_id, league_id, LeagueAction.INVITE_MEMBERS,
        "You don't have permission to invite members",
    )
    if role not in get_assignable_roles(membership.role):
        raise ServiceError("You cannot invite someone with a higher role than yours")
    return membership


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@service_operation
async def invite_user(session: AsyncSession, inviter_id: str, payload) -> Dict:
    """Invite an existing user directly."""
    data = parse_input(InviteUserRequest, payload)
    league_id = data.league_id

    await validate_invite_permissions(session, inviter_id, league_id, data.role)
    await league_service.require_active_league(session, league_id)

    if not await user_service.get_user_by_id(session, data.invitee_user_id):
        raise ServiceError("User not found")
    if await member_service.get_league_member(session, data.invitee_user_id, league_id):
        raise ServiceError("User is already a member of this league")

    existing = await get_pending_invitation(session, league_id, data.invitee_user_id)
    if existing:
        if not has_passed(existing.expires_at):
            raise ServiceError(DUPLICATE_PENDING)
        # A stale invitation no longer blocks a fresh one
        await _expire(session, existing)

    await limits_service.ensure_league_can_add_member(session, league_id)

    invitation = LeagueInvitation(
        league_id=league_id,
        inviter_id=inviter_id,
        invitee_user_id=data.invitee_user_id,
        role=data.role.value,
        status=InvitationStatus.PENDING.value,
        expires_at=days_from_now(data.expires_in_days) if data.expires_in_days else None,
    )
    try:
        async with atomic(session):
            session.add(invitation)
    except IntegrityError:
        logger.warning(
            "Concurrent duplicate invitation for user %s to league %s",
            data.invitee_user_id, league_id,
        )
        raise ServiceError(DUPLICATE_PENDING)

    logger.info(
        "User %s invited user %s to league %s as %s",
        inviter_id, data.invitee_user_id, league_id, data.role.value,
    )
    return {"invited": True, "invitation_id": invitation.id}


@service_operation
async def generate_invite_link(session: AsyncSession, inviter_id: str, payload) -> Dict:
    """Create a shareable link anyone holding the token can redeem."""
    data = parse_input(InviteLinkCreate, payload)

    await validate_invite_permissions(session, inviter_id, data.league_id, data.role)
    await league_service.require_active_league(session, data.league_id)

    token = generate_invite_token()
    invitation = LeagueInvitation(
        league_id=data.league_id,
        inviter_id=inviter_id,
        role=data.role.value,
        status=InvitationStatus.PENDING.value,
        token=token,
        max_uses=data.max_uses,
        use_count=0,
        expires_at=days_from_now(data.expires_in_days) if data.expires_in_days else None,
    )
    session.add(invitation)
    await session.flush()

    logger.info(
        "User %s generated invite link %s for league %s (max_uses=%s, expires_at=%s)",
        inviter_id, invitation.id, data.league_id, data.max_uses, invitation.expires_at,
    )
    return {
        "token": token,
        "invitation_id": invitation.id,
        "invite_url": build_invite_url(token),
        "expires_at": invitation.expires_at,
        "max_uses": invitation.max_uses,
    }


# ---------------------------------------------------------------------------
# Link preview and redemption
# ---------------------------------------------------------------------------


def _link_problem(invitation: LeagueInvitation) -> Optional[str]:
    """Why a link cannot be redeemed right now, or None if it can."""
    if invitation.status != InvitationStatus.PENDING.value:
        return LINK_INACTIVE
    if has_passed(invitation.expires_at):
        return LINK_EXPIRED
    if invitation.max_uses is not None and invitation.use_count >= invitation.max_uses:
        return LINK_EXHAUSTED
    return None


@service_operation
async def get_invite_link_details(session: AsyncSession, token: str) -> Dict:
    """Read-only preview of a link; never mutates the invitation."""
    invitation = await get_invitation_by_token(session, token)
    if not invitation:
        raise ServiceError("Invite link not found or has expired")
    league = await league_service.require_league(session, invitation.league_id)

    reason = _link_problem(invitation)
    if reason is None and league.is_archived:
        reason = league_service.LEAGUE_ARCHIVED

    return {
        "league": {
            "id": league.id,
            "name": league.name,
            "description": league.description,
            "logo": league.logo,
        },
        "role": invitation.role,
        "is_valid": reason is None,
        "reason": reason,
    }


@service_operation
async def join_via_invite_link(session: AsyncSession, token: str, user_id: str) -> Dict:
    """
    Redeem an invite link.

    The membership insert and the use-count increment happen together. The
    increment is conditional on remaining uses, so two redemptions racing for
    the last use cannot both succeed.
    """
    invitation = await get_invitation_by_token(session, token)
    if not invitation:
        raise ServiceError(LINK_NOT_FOUND)
    problem = _link_problem(invitation)
    if problem:
        raise ServiceError(problem)

    await league_service.require_active_league(session, invitation.league_id)

    async with atomic(session):
        await member_service.add_user_to_league(
            session, user_id, invitation.league_id, LeagueMemberRole(invitation.role)
        )
        result = await session.execute(
            update(LeagueInvitation)
            .where(
                LeagueInvitation.id == invitation.id,
                or_(
                    LeagueInvitation.max_uses.is_(None),
                    LeagueInvitation.use_count < LeagueInvitation.max_uses,
                ),
            )
            .values(use_count=LeagueInvitation.use_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ServiceError(LINK_EXHAUSTED)
    await session.refresh(invitation)

    logger.info("User %s joined league %s via invite link %s", user_id, invitation.league_id, invitation.id)
    return {"joined": True, "league_id": invitation.league_id}


# ---------------------------------------------------------------------------
# Invitee responses
# ---------------------------------------------------------------------------


async def _require_pending_for(
    session: AsyncSession, invitation_id: str, user_id: str
) -> LeagueInvitation:
    invitation = await get_invitation(session, invitation_id)
    if not invitation:
        raise ServiceError(INVITATION_NOT_FOUND)
    if invitation.invitee_user_id != user_id:
        raise ServiceError(NOT_FOR_YOU)
    if invitation.status != InvitationStatus.PENDING.value:
        raise ServiceError(NO_LONGER_PENDING)
    return invitation


@service_operation
async def accept_invitation(session: AsyncSession, invitation_id: str, user_id: str) -> Dict:
    """
    Accept a direct invitation and join the league with its role.

    An expired invitation is marked expired and rejected. If the user is
    already a member the invitation still converges to accepted and the
    error is reported; any other join failure leaves it pending.
    """
    invitation = await _require_pending_for(session, invitation_id, user_id)

    if has_passed(invitation.expires_at):
        await _expire(session, invitation)
        raise ServiceError("This invitation has expired")

    try:
        await member_service.add_user_to_league(
            session, user_id, invitation.league_id, LeagueMemberRole(invitation.role)
        )
    except AlreadyMemberError:
        invitation.status = InvitationStatus.ACCEPTED.value
        await session.flush()
        logger.info("Invitation %s accepted by existing member %s", invitation.id, user_id)
        raise

    invitation.status = InvitationStatus.ACCEPTED.value
    await session.flush()

    logger.info("User %s accepted invitation %s to league %s", user_id, invitation.id, invitation.league_id)
    return {"joined": True, "league_id": invitation.league_id}


@service_operation
async def decline_invitation(session: AsyncSession, invitation_id: str, user_id: str) -> Dict:
    invitation = await _require_pending_for(session, invitation_id, user_id)
    invitation.status = InvitationStatus.DECLINED.value
    await session.flush()
    logger.info("User %s declined invitation %s", user_id, invitation.id)
    return {"declined": True}


@service_operation
async def cancel_invitation(session: AsyncSession, invitation_id: str, requesting_user_id: str) -> Dict:
    """Withdraw a pending invitation or link. The row is deleted."""
    invitation = await get_invitation(session, invitation_id)
    if not invitation:
        raise ServiceError(INVITATION_NOT_FOUND)
    await member_service.require_permission(
        session, requesting_user_id, invitation.league_id, LeagueAction.INVITE_MEMBERS,
        "You don't have permission to cancel invitations",
    )
    if invitation.status != InvitationStatus.PENDING.value:
        raise ServiceError(NO_LONGER_PENDING)

    result = await session.execute(
        delete(LeagueInvitation).where(LeagueInvitation.id == invitation.id)
    )
    if result.rowcount == 0:
        raise ServiceError("Failed to cancel invitation")

    logger.info("User %s cancelled invitation %s", requesting_user_id, invitation_id)
    return {"cancelled": True}


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


async def list_pending_for_user(session: AsyncSession, user_id: str) -> List[Dict]:
    """Pending, unexpired direct invitations to active leagues, newest first."""
    inviter = aliased(User)
    now = utcnow()
    result = await session.execute(
        select(LeagueInvitation, League.name, inviter.name)
        .join(League, League.id == LeagueInvitation.league_id)
        .outerjoin(inviter, inviter.id == LeagueInvitation.inviter_id)
        .where(
            LeagueInvitation.invitee_user_id == user_id,
            LeagueInvitation.status == InvitationStatus.PENDING.value,
            League.is_archived.is_(False),
            or_(LeagueInvitation.expires_at.is_(None), LeagueInvitation.expires_at > now),
        )
        .order_by(LeagueInvitation.created_at.desc())
    )
    return [
        invitation_to_dict(invitation, league_name=league_name, inviter_name=inviter_name)
        for invitation, league_name, inviter_name in result.all()
    ]


@service_operation
async def get_user_pending_invitations(session: AsyncSession, user_id: str) -> List[Dict]:
    return await list_pending_for_user(session, user_id)


@service_operation
async def get_league_pending_invitations(
    session: AsyncSession, league_id: str, user_id: str
) -> List[Dict]:
    """Pending direct invitations and links for a league, for its inviters."""
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.INVITE_MEMBERS,
        "You don't have permission to view invitations",
    )
    invitee = aliased(User)
    inviter = aliased(User)
    result = await session.execute(
        select(LeagueInvitation, invitee.name, inviter.name)
        .outerjoin(invitee, invitee.id == LeagueInvitation.invitee_user_id)
        .outerjoin(inviter, inviter.id == LeagueInvitation.inviter_id)
        .where(
            LeagueInvitation.league_id == league_id,
            LeagueInvitation.status == InvitationStatus.PENDING.value,
        )
        .order_by(LeagueInvitation.created_at.desc())
    )
    return [
        invitation_to_dict(
            invitation,
            invitee_name=invitee_name,
            inviter_name=inviter_name,
            is_expired=has_passed(invitation.expires_at),
        )
        for invitation, invitee_name, inviter_name in result.all()
    ]
