"""
Team service.

Teams are sub-groups of a league with their own manager/member roles. Team
roles are independent of league roles: a league executive who does not
manage a team cannot edit it. Removing or leaving a team is a soft removal
(left_at is set).
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import atomic
from leaguehub.database.models import (
    PlaceholderMember,
    Team,
    TeamMember,
    TeamMemberRole,
    User,
)
from leaguehub.models.schemas import (
    TeamCreate,
    TeamMemberAdd,
    TeamMemberResponse,
    TeamResponse,
    TeamUpdate,
)
from leaguehub.services import member_service
from leaguehub.services.permissions import LeagueAction, TeamAction, can_perform_team_action
from leaguehub.services.result import (
    VALIDATION_FAILED,
    ServiceError,
    parse_input,
    service_operation,
)
from leaguehub.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

TEAM_NOT_FOUND = "Team not found"
DUPLICATE_NAME = "A team with this name already exists"


def team_to_dict(team: Team, **extra) -> Dict:
    data = TeamResponse.model_validate(team).model_dump()
    data.update(extra)
    return data


async def get_team_by_id(session: AsyncSession, team_id: str) -> Optional[Team]:
    if not team_id:
        return None
    return await session.get(Team, team_id)


async def get_active_team_member(
    session: AsyncSession, team_id: str, user_id: str
) -> Optional[TeamMember]:
    result = await session.execute(
        select(TeamMember).where(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
            TeamMember.left_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def _team_name_exists(
    session: AsyncSession, league_id: str, name: str, exclude_team_id: Optional[str] = None
) -> bool:
    stmt = select(Team.id).where(
        Team.league_id == league_id, func.lower(Team.name) == name.lower()
    )
    if exclude_team_id:
        stmt = stmt.where(Team.id != exclude_team_id)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _require_team_action(
    session: AsyncSession, team_id: str, user_id: str, action: TeamAction, denied_message: str
) -> Team:
    """League membership plus a qualifying team role; league role is irrelevant here."""
    team = await get_team_by_id(session, team_id)
    if not team:
        raise ServiceError(TEAM_NOT_FOUND)
    await member_service.require_membership(session, user_id, team.league_id)
    acting = await get_active_team_member(session, team.id, user_id)
    if not acting or not can_perform_team_action(acting.role, action):
        raise ServiceError(denied_message)
    return team


async def _active_members(session: AsyncSession, team_id: str) -> List[Dict]:
    result = await session.execute(
        select(TeamMember, User.name, PlaceholderMember.display_name)
        .outerjoin(User, User.id == TeamMember.user_id)
        .outerjoin(PlaceholderMember, PlaceholderMember.id == TeamMember.placeholder_member_id)
        .where(TeamMember.team_id == team_id, TeamMember.left_at.is_(None))
        .order_by(TeamMember.joined_at)
    )
    members = []
    for member, user_name, placeholder_name in result.all():
        data = TeamMemberResponse.model_validate(member).model_dump()
        data["name"] = user_name if member.user_id else placeholder_name
        members.append(data)
    return members


# ---------------------------------------------------------------------------
# Team lifecycle
# ---------------------------------------------------------------------------


@service_operation
async def create_team(session: AsyncSession, league_id: str, payload, user_id: str) -> Dict:
    """Create a team; the creator is enrolled as its manager in the same unit."""
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.CREATE_TEAMS,
        "You do not have permission to create teams",
    )
    data = parse_input(TeamCreate, payload)
    if await _team_name_exists(session, league_id, data.name):
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    team = Team(
        league_id=league_id,
        name=data.name,
        description=data.description or None,
        logo=data.logo or None,
        created_by_id=user_id,
    )
    try:
        async with atomic(session):
            session.add(team)
            await session.flush()
            session.add(
                TeamMember(team_id=team.id, user_id=user_id, role=TeamMemberRole.MANAGER.value)
            )
    except IntegrityError:
        logger.warning("Concurrent duplicate team name %r in league %s", data.name, league_id)
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    logger.info("User %s created team %s in league %s", user_id, team.id, league_id)
    return team_to_dict(team)


@service_operation
async def get_team(session: AsyncSession, team_id: str, user_id: str) -> Dict:
    team = await get_team_by_id(session, team_id)
    if not team:
        raise ServiceError(TEAM_NOT_FOUND)
    await member_service.require_membership(session, user_id, team.league_id)
    return team_to_dict(team, members=await _active_members(session, team.id))


@service_operation
async def get_league_teams(session: AsyncSession, league_id: str, user_id: str) -> List[Dict]:
    await member_service.require_membership(session, user_id, league_id)
    active_counts = (
        select(TeamMember.team_id, func.count(TeamMember.id).label("member_count"))
        .where(TeamMember.left_at.is_(None))
        .group_by(TeamMember.team_id)
        .subquery()
    )
    result = await session.execute(
        select(Team, func.coalesce(active_counts.c.member_count, 0))
        .outerjoin(active_counts, active_counts.c.team_id == Team.id)
        .where(Team.league_id == league_id)
        .order_by(Team.name)
    )
    return [team_to_dict(team, member_count=count) for team, count in result.all()]


@service_operation
async def get_my_teams(session: AsyncSession, league_id: str, user_id: str) -> List[Dict]:
    await member_service.require_membership(session, user_id, league_id)
    result = await session.execute(
        select(Team, TeamMember.role)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(
            Team.league_id == league_id,
            TeamMember.user_id == user_id,
            TeamMember.left_at.is_(None),
        )
        .order_by(Team.name)
    )
    return [team_to_dict(team, team_role=role) for team, role in result.all()]


@service_operation
async def update_team(session: AsyncSession, team_id: str, payload, user_id: str) -> Dict:
    team = await _require_team_action(
        session, team_id, user_id, TeamAction.EDIT_TEAM,
        "You do not have permission to edit this team",
    )
    data = parse_input(TeamUpdate, payload)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("name") and await _team_name_exists(
        session, team.league_id, changes["name"], exclude_team_id=team.id
    ):
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    try:
        async with atomic(session):
            if changes.get("name"):
                team.name = changes["name"]
            if "description" in changes:
                team.description = changes["description"] or None
            if "logo" in changes:
                team.logo = changes["logo"] or None
    except IntegrityError:
        logger.warning("Concurrent duplicate team name on update of team %s", team_id)
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    logger.info("User %s updated team %s", user_id, team_id)
    return team_to_dict(team)


async def _set_archived(session: AsyncSession, team_id: str, user_id: str, archived: bool) -> None:
    action = TeamAction.ARCHIVE_TEAM if archived else TeamAction.UNARCHIVE_TEAM
    verb = "archive" if archived else "unarchive"
    team = await _require_team_action(
        session, team_id, user_id, action, f"You do not have permission to {verb} this team"
    )
    if team.is_archived == archived:
        raise ServiceError("Team is already archived" if archived else "Team is not archived")
    team.is_archived = archived
    await session.flush()
    logger.info("User %s %sd team %s", user_id, verb, team_id)


@service_operation
async def archive_team(session: AsyncSession, team_id: str, user_id: str) -> Dict:
    await _set_archived(session, team_id, user_id, True)
    return {"archived": True}


@service_operation
async def unarchive_team(session: AsyncSession, team_id: str, user_id: str) -> Dict:
    await _set_archived(session, team_id, user_id, False)
    return {"unarchived": True}


@service_operation
async def delete_team(session: AsyncSession, team_id: str, user_id: str) -> Dict:
    """Permanently delete a team and its membership rows."""
    await _require_team_action(
        session, team_id, user_id, TeamAction.DELETE_TEAM,
        "You do not have permission to delete this team",
    )
    result = await session.execute(delete(Team).where(Team.id == team_id))
    if result.rowcount == 0:
        raise ServiceError("Failed to delete team")
    logger.info("User %s deleted team %s", user_id, team_id)
    return {"deleted": True}


# ---------------------------------------------------------------------------
# Team membership
# ---------------------------------------------------------------------------


@service_operation
async def add_team_member(session: AsyncSession, team_id: str, payload, user_id: str) -> Dict:
    """Add a league member or a placeholder (exactly one) to the team."""
    team = await _require_team_action(
        session, team_id, user_id, TeamAction.ADD_MEMBERS,
        "You do not have permission to add members to this team",
    )
    data = parse_input(TeamMemberAdd, payload)

    if data.user_id:
        if not await member_service.get_league_member(session, data.user_id, team.league_id):
            raise ServiceError("User is not a member of this league")
        if await get_active_team_member(session, team.id, data.user_id):
            raise ServiceError("User is already a member of this team")
    else:
        placeholder = await session.get(PlaceholderMember, data.placeholder_member_id)
        if not placeholder or placeholder.league_id != team.league_id:
            raise ServiceError("Placeholder member not found")
        if placeholder.retired_at is not None:
            raise ServiceError("Placeholder member has been retired")
        existing = await session.execute(
            select(TeamMember.id).where(
                TeamMember.team_id == team.id,
                TeamMember.placeholder_member_id == placeholder.id,
                TeamMember.left_at.is_(None),
            )
        )
        if existing.scalar_one_or_none():
            raise ServiceError("Placeholder member is already a member of this team")

    member = TeamMember(
        team_id=team.id,
        user_id=data.user_id or None,
        placeholder_member_id=data.placeholder_member_id or None,
        role=TeamMemberRole.MEMBER.value,
    )
    session.add(member)
    await session.flush()

    logger.info(
        "User %s added %s to team %s",
        user_id, data.user_id or f"placeholder {data.placeholder_member_id}", team.id,
    )
    return TeamMemberResponse.model_validate(member).model_dump()


@service_operation
async def remove_team_member(session: AsyncSession, team_member_id: str, user_id: str) -> Dict:
    target = await session.get(TeamMember, team_member_id)
    if not target or target.left_at is not None:
        raise ServiceError("Team member not found")
    await _require_team_action(
        session, target.team_id, user_id, TeamAction.REMOVE_MEMBERS,
        "You do not have permission to remove members from this team",
    )
    target.left_at = utcnow()
    await session.flush()
    logger.info("User %s removed team member %s from team %s", user_id, team_member_id, target.team_id)
    return {"removed": True}


@service_operation
async def leave_team(session: AsyncSession, team_id: str, user_id: str) -> Dict:
    """Self-service; needs only an active team membership."""
    team = await get_team_by_id(session, team_id)
    if not team:
        raise ServiceError(TEAM_NOT_FOUND)
    await member_service.require_membership(session, user_id, team.league_id)
    member = await get_active_team_member(session, team.id, user_id)
    if not member:
        raise ServiceError("You are not a member of this team")
    member.left_at = utcnow()
    await session.flush()
    logger.info("User %s left team %s", user_id, team_id)
    return {"left": True}
