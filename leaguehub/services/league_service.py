"""
League service: create, read, update, archive and delete leagues, public
discovery and self-service join/leave.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import atomic
from leaguehub.database.models import (
    League,
    LeagueMember,
    LeagueMemberRole,
    LeagueVisibility,
)
from leaguehub.models.schemas import LeagueCreate, LeagueResponse, LeagueUpdate, SearchQuery
from leaguehub.services import limits_service, member_service
from leaguehub.services.member_service import require_membership, require_permission
from leaguehub.services.permissions import LeagueAction
from leaguehub.services.result import (
    AlreadyMemberError,
    ServiceError,
    parse_input,
    service_operation,
)

logger = logging.getLogger(__name__)

LEAGUE_NOT_FOUND = "League not found"
LEAGUE_ARCHIVED = "This league has been archived"
SOLE_EXECUTIVE_LEAVE = (
    "You are the only executive. Please transfer the executive role to another "
    "member before leaving."
)
PUBLIC_SEARCH_LIMIT = 20


def league_to_dict(league: League, **extra) -> Dict:
    data = LeagueResponse.model_validate(league).model_dump()
    data.update(extra)
    return data


async def get_league_by_id(session: AsyncSession, league_id: str) -> Optional[League]:
    if not league_id:
        return None
    return await session.get(League, league_id)


async def require_league(session: AsyncSession, league_id: str) -> League:
    league = await get_league_by_id(session, league_id)
    if not league:
        raise ServiceError(LEAGUE_NOT_FOUND)
    return league


async def require_active_league(session: AsyncSession, league_id: str) -> League:
    """League that exists and is not archived."""
    league = await require_league(session, league_id)
    if league.is_archived:
        raise ServiceError(LEAGUE_ARCHIVED)
    return league


async def get_executive_count(session: AsyncSession, league_id: str) -> int:
    return await member_service.count_members_with_role(
        session, league_id, LeagueMemberRole.EXECUTIVE
    )


@service_operation
async def create_league(session: AsyncSession, user_id: str, payload) -> Dict:
    """
    Create a league with the creator as its sole executive.

    The league row and the executive membership are written together or not at all.
    """
    data = parse_input(LeagueCreate, payload)

    await limits_service.ensure_user_can_join_another_league(session, user_id)

    league = League(
        name=data.name,
        description=data.description,
        visibility=data.visibility.value,
        logo=data.logo or None,
    )
    async with atomic(session):
        session.add(league)
        await session.flush()
        session.add(
            LeagueMember(
                user_id=user_id,
                league_id=league.id,
                role=LeagueMemberRole.EXECUTIVE.value,
            )
        )

    logger.info("User %s created league %s (%s)", user_id, league.id, league.name)
    return league_to_dict(league)


@service_operation
async def get_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    await require_membership(session, user_id, league_id)
    league = await require_active_league(session, league_id)
    member_count = await limits_service.get_member_count(session, league_id)
    return league_to_dict(league, member_count=member_count)


@service_operation
async def get_league_with_role(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    membership = await require_membership(session, user_id, league_id)
    league = await require_active_league(session, league_id)
    member_count = await limits_service.get_member_count(session, league_id)
    return league_to_dict(league, member_count=member_count, role=membership.role)


@service_operation
async def update_league(session: AsyncSession, league_id: str, payload, user_id: str) -> Dict:
    data = parse_input(LeagueUpdate, payload)
    await require_permission(
        session, user_id, league_id, LeagueAction.EDIT_SETTINGS,
        "You don't have permission to edit league settings",
    )
    league = await require_league(session, league_id)
    if league.is_archived:
        raise ServiceError("Cannot edit an archived league")

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field == "logo":
            league.logo = value or None
        elif value is not None:
            if field == "visibility":
                value = LeagueVisibility(value).value
            setattr(league, field, value)
    await session.flush()

    logger.info("User %s updated league %s (%s)", user_id, league_id, ", ".join(sorted(changes)))
    return league_to_dict(league)


async def _set_archived(
    session: AsyncSession, league_id: str, user_id: str, archived: bool
) -> League:
    action = LeagueAction.ARCHIVE_LEAGUE if archived else LeagueAction.UNARCHIVE_LEAGUE
    verb = "archive" if archived else "unarchive"
    await require_permission(
        session, user_id, league_id, action,
        f"You don't have permission to {verb} the league",
    )
    league = await require_league(session, league_id)
    if league.is_archived == archived:
        raise ServiceError("League is already archived" if archived else "League is not archived")

    league.is_archived = archived
    await session.flush()
    logger.info("User %s %sd league %s", user_id, verb, league_id)
    return league


@service_operation
async def archive_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    await _set_archived(session, league_id, user_id, True)
    return {"archived": True}


@service_operation
async def unarchive_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    await _set_archived(session, league_id, user_id, False)
    return {"unarchived": True}


@service_operation
async def delete_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    """Hard delete. Every league-owned row goes with it via ON DELETE CASCADE."""
    await require_permission(
        session, user_id, league_id, LeagueAction.DELETE_LEAGUE,
        "You don't have permission to delete the league",
    )
    await require_league(session, league_id)

    result = await session.execute(delete(League).where(League.id == league_id))
    if result.rowcount == 0:
        raise ServiceError("Failed to delete league")

    logger.info("User %s deleted league %s", user_id, league_id)
    return {"deleted": True}


async def _leagues_for_user(session: AsyncSession, user_id: str, archived: bool) -> List[Dict]:
    member_counts = (
        select(LeagueMember.league_id, func.count(LeagueMember.id).label("member_count"))
        .group_by(LeagueMember.league_id)
        .subquery()
    )
    result = await session.execute(
        select(League, LeagueMember.role, member_counts.c.member_count)
        .join(LeagueMember, LeagueMember.league_id == League.id)
        .join(member_counts, member_counts.c.league_id == League.id)
        .where(LeagueMember.user_id == user_id, League.is_archived.is_(archived))
        .order_by(League.name)
    )
    return [
        league_to_dict(league, role=role, member_count=member_count)
        for league, role, member_count in result.all()
    ]


@service_operation
async def get_user_leagues(session: AsyncSession, user_id: str) -> List[Dict]:
    """Active leagues the user belongs to, with their role."""
    return await _leagues_for_user(session, user_id, archived=False)


@service_operation
async def get_archived_leagues(session: AsyncSession, user_id: str) -> List[Dict]:
    return await _leagues_for_user(session, user_id, archived=True)


@service_operation
async def get_archived_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    membership = await require_membership(session, user_id, league_id)
    if membership.role != LeagueMemberRole.EXECUTIVE.value:
        raise ServiceError("Only executives can view archived leagues")
    league = await require_league(session, league_id)
    if not league.is_archived:
        raise ServiceError("This league is not archived")
    member_count = await limits_service.get_member_count(session, league_id)
    return league_to_dict(league, member_count=member_count)


@service_operation
async def search_public_leagues(session: AsyncSession, query, user_id: str) -> List[Dict]:
    """Public, active leagues whose name or description matches the query."""
    try:
        parsed = parse_input(SearchQuery, {"query": query})
    except ServiceError as e:
        raise ServiceError("Invalid search query", e.field_errors)

    pattern = f"%{parsed.query.lower()}%"
    result = await session.execute(
        select(League, func.count(LeagueMember.id))
        .outerjoin(LeagueMember, LeagueMember.league_id == League.id)
        .where(
            League.visibility == LeagueVisibility.PUBLIC.value,
            League.is_archived.is_(False),
            or_(
                func.lower(League.name).like(pattern),
                func.lower(League.description).like(pattern),
            ),
        )
        .group_by(League.id)
        .order_by(League.name)
        .limit(PUBLIC_SEARCH_LIMIT)
    )
    rows = result.all()

    member_of = set()
    if rows:
        mine = await session.execute(
            select(LeagueMember.league_id).where(
                LeagueMember.user_id == user_id,
                LeagueMember.league_id.in_([league.id for league, _ in rows]),
            )
        )
        member_of = set(mine.scalars().all())

    return [
        league_to_dict(league, member_count=count, is_member=league.id in member_of)
        for league, count in rows
    ]


@service_operation
async def join_public_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    """Self-service join; only public, active leagues accept unsolicited joins."""
    if await member_service.get_league_member(session, user_id, league_id):
        raise AlreadyMemberError()
    league = await require_league(session, league_id)
    if league.visibility != LeagueVisibility.PUBLIC.value:
        raise ServiceError("This league is private and requires an invitation")
    if league.is_archived:
        raise ServiceError(LEAGUE_ARCHIVED)

    await member_service.add_user_to_league(session, user_id, league_id, LeagueMemberRole.MEMBER)
    return {"joined": True}


@service_operation
async def leave_league(session: AsyncSession, league_id: str, user_id: str) -> Dict:
    """Leave a league. The sole executive must hand over the role first."""
    membership = await require_membership(session, user_id, league_id)

    if membership.role == LeagueMemberRole.EXECUTIVE.value:
        if await get_executive_count(session, league_id) <= 1:
            raise ServiceError(SOLE_EXECUTIVE_LEAVE)

    result = await session.execute(delete(LeagueMember).where(LeagueMember.id == membership.id))
    if result.rowcount == 0:
        raise ServiceError("Failed to leave league")

    logger.info("User %s left league %s", user_id, league_id)
    return {"left": True}
