"""
League membership lifecycle: join, remove, role changes and the shared
membership/permission guards used by every league-scoped service.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import atomic
from leaguehub.database.models import (
    InvitationStatus,
    LeagueInvitation,
    LeagueMember,
    LeagueMemberRole,
    User,
)
from leaguehub.models.schemas import (
    LeagueMemberResponse,
    SearchQuery,
    UpdateMemberRoleRequest,
)
from leaguehub.services import limits_service, user_service
from leaguehub.services.permissions import LeagueAction, can_perform_action
from leaguehub.services.result import (
    AlreadyMemberError,
    ServiceError,
    parse_input,
    service_operation,
)
from leaguehub.services.roles import can_act_on_role, get_assignable_roles
from leaguehub.utils.datetime_utils import is_in_future

logger = logging.getLogger(__name__)

NOT_A_MEMBER = "You are not a member of this league"
SOLE_EXECUTIVE_DEMOTE = "Cannot demote the only executive. Transfer executive role first."


# ---------------------------------------------------------------------------
# Lookups and guards
# ---------------------------------------------------------------------------


async def get_league_member(
    session: AsyncSession, user_id: str, league_id: str
) -> Optional[LeagueMember]:
    if not user_id or not league_id:
        return None
    result = await session.execute(
        select(LeagueMember).where(
            LeagueMember.user_id == user_id, LeagueMember.league_id == league_id
        )
    )
    return result.scalar_one_or_none()


async def require_membership(
    session: AsyncSession, user_id: str, league_id: str, message: str = NOT_A_MEMBER
) -> LeagueMember:
    """Return the caller's membership or raise ServiceError."""
    membership = await get_league_member(session, user_id, league_id)
    if not membership:
        raise ServiceError(message)
    return membership


def require_action(membership: LeagueMember, action: LeagueAction, message: str) -> None:
    if not can_perform_action(membership.role, action):
        raise ServiceError(message)


async def require_permission(
    session: AsyncSession, user_id: str, league_id: str, action: LeagueAction, message: str
) -> LeagueMember:
    """Membership plus a league action in one call."""
    membership = await require_membership(session, user_id, league_id)
    require_action(membership, action, message)
    return membership


async def count_members_with_role(
    session: AsyncSession, league_id: str, role: LeagueMemberRole
) -> int:
    result = await session.execute(
        select(func.count(LeagueMember.id)).where(
            LeagueMember.league_id == league_id, LeagueMember.role == role.value
        )
    )
    return result.scalar_one()


def membership_is_suspended(membership: Optional[LeagueMember]) -> bool:
    """Suspension expires lazily: only a future suspended_until counts."""
    return bool(membership) and is_in_future(membership.suspended_until)


async def is_member_suspended(session: AsyncSession, user_id: str, league_id: str) -> bool:
    membership = await get_league_member(session, user_id, league_id)
    return membership_is_suspended(membership)


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


async def accept_pending_invitations(session: AsyncSession, league_id: str, user_id: str) -> int:
    """Mark the user's pending direct invitations to this league as accepted."""
    result = await session.execute(
        update(LeagueInvitation)
        .where(
            LeagueInvitation.league_id == league_id,
            LeagueInvitation.invitee_user_id == user_id,
            LeagueInvitation.status == InvitationStatus.PENDING.value,
        )
        .values(status=InvitationStatus.ACCEPTED.value)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


async def add_user_to_league(
    session: AsyncSession,
    user_id: str,
    league_id: str,
    role: LeagueMemberRole = LeagueMemberRole.MEMBER,
) -> LeagueMember:
    """
    Core join shared by public join, invitation acceptance and link redemption.

    Checks existing membership and both quotas, then inserts the membership and
    accepts any other pending direct invitations as one unit. Raises
    AlreadyMemberError when the user is (or concurrently became) a member.
    """
    if await get_league_member(session, user_id, league_id):
        raise AlreadyMemberError()

    await limits_service.ensure_user_can_join_another_league(session, user_id)
    await limits_service.ensure_league_can_add_member(session, league_id)

    role_value = LeagueMemberRole(role).value
    membership = LeagueMember(user_id=user_id, league_id=league_id, role=role_value)
    try:
        async with atomic(session):
            session.add(membership)
            await session.flush()
            await accept_pending_invitations(session, league_id, user_id)
    except IntegrityError:
        logger.warning("Duplicate membership insert for user %s in league %s", user_id, league_id)
        raise AlreadyMemberError()

    logger.info("User %s joined league %s as %s", user_id, league_id, role_value)
    return membership


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def member_to_dict(member: LeagueMember, user: Optional[User]) -> Dict:
    data = LeagueMemberResponse.model_validate(member).model_dump()
    if user is not None:
        data.update(name=user.name, username=user.username, image=user.image)
    return data


async def list_members_with_users(session: AsyncSession, league_id: str) -> List[Dict]:
    result = await session.execute(
        select(LeagueMember, User)
        .join(User, User.id == LeagueMember.user_id)
        .where(LeagueMember.league_id == league_id)
        .order_by(LeagueMember.joined_at)
    )
    return [member_to_dict(member, user) for member, user in result.all()]


@service_operation
async def get_league_members(session: AsyncSession, league_id: str, user_id: str) -> List[Dict]:
    await require_permission(
        session, user_id, league_id, LeagueAction.VIEW_MEMBERS,
        "You don't have permission to view members",
    )
    return await list_members_with_users(session, league_id)


@service_operation
async def search_users_for_invite(
    session: AsyncSession, league_id: str, query, user_id: str
) -> List[Dict]:
    """Search users to invite, excluding everyone already in the league."""
    await require_permission(
        session, user_id, league_id, LeagueAction.INVITE_MEMBERS,
        "You don't have permission to invite members",
    )
    try:
        parsed = parse_input(SearchQuery, {"query": query})
    except ServiceError as e:
        raise ServiceError("Invalid search query", e.field_errors)

    member_ids = await session.execute(
        select(LeagueMember.user_id).where(LeagueMember.league_id == league_id)
    )
    return await user_service.search_users(
        session, parsed.query, exclude_user_ids=member_ids.scalars().all()
    )


# ---------------------------------------------------------------------------
# Remove / role change
# ---------------------------------------------------------------------------


@service_operation
async def remove_member(
    session: AsyncSession, league_id: str, target_user_id: str, requesting_user_id: str
) -> Dict:
    """Remove another member. Requires REMOVE_MEMBERS and a strictly higher role."""
    if target_user_id == requesting_user_id:
        raise ServiceError("You cannot remove yourself. Use 'Leave League' instead.")

    requester = await require_permission(
        session, requesting_user_id, league_id, LeagueAction.REMOVE_MEMBERS,
        "You don't have permission to remove members",
    )
    target = await get_league_member(session, target_user_id, league_id)
    if not target:
        raise ServiceError("User is not a member of this league")
    if not can_act_on_role(requester.role, target.role):
        raise ServiceError("You cannot remove someone with an equal or higher role")

    result = await session.execute(delete(LeagueMember).where(LeagueMember.id == target.id))
    if result.rowcount == 0:
        raise ServiceError("Failed to remove member")

    logger.info(
        "User %s removed user %s from league %s", requesting_user_id, target_user_id, league_id
    )
    return {"removed": True}


@service_operation
async def update_member_role(
    session: AsyncSession, league_id: str, payload, requesting_user_id: str
) -> Dict:
    """
    Change another member's role.

    The requester needs MANAGE_ROLES, must outrank the target, may only grant
    roles up to their own, and cannot demote the league's only executive.
    """
    data = parse_input(UpdateMemberRoleRequest, payload)
    new_role = data.role

    if data.target_user_id == requesting_user_id:
        raise ServiceError("You cannot change your own role")

    requester = await require_permission(
        session, requesting_user_id, league_id, LeagueAction.MANAGE_ROLES,
        "You don't have permission to manage roles",
    )
    target = await get_league_member(session, data.target_user_id, league_id)
    if not target:
        raise ServiceError("User is not a member of this league")
    if not can_act_on_role(requester.role, target.role):
        raise ServiceError("You cannot modify the role of someone with an equal or higher role")
    if target.role == new_role.value:
        raise ServiceError("User already has this role")
    if new_role not in get_assignable_roles(requester.role):
        raise ServiceError("You cannot assign a role higher than your own")

    if target.role == LeagueMemberRole.EXECUTIVE.value and new_role != LeagueMemberRole.EXECUTIVE:
        executive_count = await count_members_with_role(
            session, league_id, LeagueMemberRole.EXECUTIVE
        )
        if executive_count <= 1:
            raise ServiceError(SOLE_EXECUTIVE_DEMOTE)

    old_role = target.role
    target.role = new_role.value
    await session.flush()

    logger.info(
        "User %s changed role of %s in league %s from %s to %s",
        requesting_user_id, data.target_user_id, league_id, old_role, new_role.value,
    )
    return {"updated": True}
