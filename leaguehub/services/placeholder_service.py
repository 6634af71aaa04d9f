"""
Placeholder member service.

Placeholders stand in for people without an account so they can still be
put on teams and tracked. They are retired (soft-deleted) and restored rather
than removed, and can later be linked to the real account once it joins.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.models import PlaceholderMember
from leaguehub.models.schemas import PlaceholderCreate, PlaceholderResponse, PlaceholderUpdate
from leaguehub.services import member_service
from leaguehub.services.permissions import LeagueAction
from leaguehub.services.result import ServiceError, parse_input, service_operation
from leaguehub.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

PLACEHOLDER_NOT_FOUND = "Placeholder member not found"


def placeholder_to_dict(placeholder: PlaceholderMember) -> Dict:
    return PlaceholderResponse.model_validate(placeholder).model_dump()


async def get_placeholder_by_id(
    session: AsyncSession, placeholder_id: str
) -> Optional[PlaceholderMember]:
    if not placeholder_id:
        return None
    return await session.get(PlaceholderMember, placeholder_id)


async def _require_managed_placeholder(
    session: AsyncSession, placeholder_id: str, user_id: str, denied_message: str
) -> PlaceholderMember:
    placeholder = await get_placeholder_by_id(session, placeholder_id)
    if not placeholder:
        raise ServiceError(PLACEHOLDER_NOT_FOUND)
    await member_service.require_permission(
        session, user_id, placeholder.league_id, LeagueAction.CREATE_PLACEHOLDERS, denied_message
    )
    return placeholder


async def _list(session: AsyncSession, league_id: str, retired: bool) -> List[Dict]:
    retired_filter = (
        PlaceholderMember.retired_at.isnot(None)
        if retired
        else PlaceholderMember.retired_at.is_(None)
    )
    result = await session.execute(
        select(PlaceholderMember)
        .where(PlaceholderMember.league_id == league_id, retired_filter)
        .order_by(PlaceholderMember.created_at)
    )
    return [placeholder_to_dict(p) for p in result.scalars().all()]


@service_operation
async def create_placeholder(session: AsyncSession, league_id: str, payload, user_id: str) -> Dict:
    data = parse_input(PlaceholderCreate, payload)
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.CREATE_PLACEHOLDERS,
        "You don't have permission to create placeholder members",
    )

    placeholder = PlaceholderMember(league_id=league_id, display_name=data.display_name)
    session.add(placeholder)
    await session.flush()

    logger.info("User %s created placeholder %s in league %s", user_id, placeholder.id, league_id)
    return placeholder_to_dict(placeholder)


@service_operation
async def get_placeholders(session: AsyncSession, league_id: str, user_id: str) -> List[Dict]:
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.VIEW_MEMBERS,
        "You don't have permission to view members",
    )
    return await _list(session, league_id, retired=False)


@service_operation
async def get_retired_placeholders(session: AsyncSession, league_id: str, user_id: str) -> List[Dict]:
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.CREATE_PLACEHOLDERS,
        "You don't have permission to view retired placeholders",
    )
    return await _list(session, league_id, retired=True)


@service_operation
async def update_placeholder(session: AsyncSession, placeholder_id: str, payload, user_id: str) -> Dict:
    data = parse_input(PlaceholderUpdate, payload)
    placeholder = await _require_managed_placeholder(
        session, placeholder_id, user_id,
        "You don't have permission to manage placeholder members",
    )
    placeholder.display_name = data.display_name
    await session.flush()
    logger.info("User %s renamed placeholder %s", user_id, placeholder_id)
    return placeholder_to_dict(placeholder)


@service_operation
async def retire_placeholder(session: AsyncSession, placeholder_id: str, user_id: str) -> Dict:
    placeholder = await _require_managed_placeholder(
        session, placeholder_id, user_id,
        "You don't have permission to retire placeholder members",
    )
    if placeholder.retired_at is not None:
        raise ServiceError("Placeholder member is already retired")
    placeholder.retired_at = utcnow()
    await session.flush()
    logger.info("User %s retired placeholder %s", user_id, placeholder_id)
    return {"retired": True}


@service_operation
async def restore_placeholder(session: AsyncSession, placeholder_id: str, user_id: str) -> Dict:
    placeholder = await _require_managed_placeholder(
        session, placeholder_id, user_id,
        "You don't have permission to restore placeholder members",
    )
    if placeholder.retired_at is None:
        raise ServiceError("Placeholder member is not retired")
    placeholder.retired_at = None
    await session.flush()
    logger.info("User %s restored placeholder %s", user_id, placeholder_id)
    return {"restored": True}


@service_operation
async def link_placeholder(
    session: AsyncSession, placeholder_id: str, target_user_id: str, user_id: str
) -> Dict:
    """
    Link a placeholder to the real account of a league member.

    The link is a weak reference; it can be set once and does not move the
    placeholder's history anywhere.
    """
    placeholder = await _require_managed_placeholder(
        session, placeholder_id, user_id,
        "You don't have permission to manage placeholder members",
    )
    if placeholder.linked_user_id is not None:
        raise ServiceError("Placeholder member is already linked to a user")
    if not await member_service.get_league_member(session, target_user_id, placeholder.league_id):
        raise ServiceError("User is not a member of this league")

    placeholder.linked_user_id = target_user_id
    await session.flush()
    logger.info(
        "User %s linked placeholder %s to user %s", user_id, placeholder_id, target_user_id
    )
    return placeholder_to_dict(placeholder)
