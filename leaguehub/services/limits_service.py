"""
Limit/quota engine.

Three resource classes have a ceiling: leagues per user, members per league
and game types per league. The effective ceiling is an override row when one
exists (whose value may be NULL = unlimited), otherwise the default constant.
Checks run inside the operation that performs the write.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import atomic
from leaguehub.database.models import (
    GameType,
    League,
    LeagueMember,
    LimitOverride,
    LimitType,
)
from leaguehub.models.schemas import (
    LimitCheckResult,
    LimitInfo,
    LimitOverrideRequest,
    LimitOverrideResponse,
)
from leaguehub.services import user_service
from leaguehub.services.result import ServiceError, parse_input, service_operation
from leaguehub.utils.constants import (
    MAX_GAME_TYPES_PER_LEAGUE,
    MAX_LEAGUES_PER_USER,
    MAX_MEMBERS_PER_LEAGUE,
    NEAR_LIMIT_THRESHOLD,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    LimitType.MAX_LEAGUES_PER_USER: MAX_LEAGUES_PER_USER,
    LimitType.MAX_MEMBERS_PER_LEAGUE: MAX_MEMBERS_PER_LEAGUE,
    LimitType.MAX_GAME_TYPES_PER_LEAGUE: MAX_GAME_TYPES_PER_LEAGUE,
}


def create_limit_info(current: int, max_value: Optional[int]) -> LimitInfo:
    is_at_limit = max_value is not None and current >= max_value
    is_near_limit = (
        max_value is not None
        and not is_at_limit
        and current >= max_value - NEAR_LIMIT_THRESHOLD
    )
    return LimitInfo(
        current=current,
        max=max_value,
        is_at_limit=is_at_limit,
        is_near_limit=is_near_limit,
    )


# ---------------------------------------------------------------------------
# Usage counts
# ---------------------------------------------------------------------------


async def get_user_league_count(session: AsyncSession, user_id: str) -> int:
    """Leagues the user belongs to; archived leagues do not count."""
    result = await session.execute(
        select(func.count(LeagueMember.id))
        .join(League, League.id == LeagueMember.league_id)
        .where(LeagueMember.user_id == user_id, League.is_archived.is_(False))
    )
    return result.scalar_one()


async def get_member_count(session: AsyncSession, league_id: str) -> int:
    result = await session.execute(
        select(func.count(LeagueMember.id)).where(LeagueMember.league_id == league_id)
    )
    return result.scalar_one()


async def get_game_type_count(session: AsyncSession, league_id: str) -> int:
    """Active (non-archived) game types in a league."""
    result = await session.execute(
        select(func.count(GameType.id)).where(
            GameType.league_id == league_id, GameType.is_archived.is_(False)
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Overrides and effective limits
# ---------------------------------------------------------------------------


async def get_limit_override_for_user(
    session: AsyncSession, user_id: str, limit_type: LimitType
) -> Optional[LimitOverride]:
    result = await session.execute(
        select(LimitOverride).where(
            LimitOverride.user_id == user_id,
            LimitOverride.limit_type == limit_type.value,
        )
    )
    return result.scalar_one_or_none()


async def get_limit_override_for_league(
    session: AsyncSession, league_id: str, limit_type: LimitType
) -> Optional[LimitOverride]:
    result = await session.execute(
        select(LimitOverride).where(
            LimitOverride.league_id == league_id,
            LimitOverride.limit_type == limit_type.value,
        )
    )
    return result.scalar_one_or_none()


async def get_effective_user_league_limit(session: AsyncSession, user_id: str) -> Optional[int]:
    override = await get_limit_override_for_user(
        session, user_id, LimitType.MAX_LEAGUES_PER_USER
    )
    if override:
        return override.limit_value
    return MAX_LEAGUES_PER_USER


async def get_effective_league_member_limit(
    session: AsyncSession, league_id: str
) -> Optional[int]:
    override = await get_limit_override_for_league(
        session, league_id, LimitType.MAX_MEMBERS_PER_LEAGUE
    )
    if override:
        return override.limit_value
    return MAX_MEMBERS_PER_LEAGUE


async def get_effective_league_game_type_limit(
    session: AsyncSession, league_id: str
) -> Optional[int]:
    override = await get_limit_override_for_league(
        session, league_id, LimitType.MAX_GAME_TYPES_PER_LEAGUE
    )
    if override:
        return override.limit_value
    return MAX_GAME_TYPES_PER_LEAGUE


async def get_user_league_limit_info(session: AsyncSession, user_id: str) -> LimitInfo:
    current = await get_user_league_count(session, user_id)
    max_value = await get_effective_user_league_limit(session, user_id)
    return create_limit_info(current, max_value)


async def get_league_member_limit_info(session: AsyncSession, league_id: str) -> LimitInfo:
    current = await get_member_count(session, league_id)
    max_value = await get_effective_league_member_limit(session, league_id)
    return create_limit_info(current, max_value)


async def get_league_game_type_limit_info(session: AsyncSession, league_id: str) -> LimitInfo:
    current = await get_game_type_count(session, league_id)
    max_value = await get_effective_league_game_type_limit(session, league_id)
    return create_limit_info(current, max_value)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _check(limit_info: LimitInfo, message_template: str) -> LimitCheckResult:
    if limit_info.is_at_limit:
        # is_at_limit implies a finite max, so there is always a message
        return LimitCheckResult(
            allowed=False,
            limit_info=limit_info,
            message=message_template.format(max=limit_info.max),
        )
    return LimitCheckResult(allowed=True, limit_info=limit_info)


async def can_user_join_another_league(session: AsyncSession, user_id: str) -> LimitCheckResult:
    limit_info = await get_user_league_limit_info(session, user_id)
    return _check(limit_info, "You can only be a member of {max} leagues")


async def can_league_add_member(session: AsyncSession, league_id: str) -> LimitCheckResult:
    limit_info = await get_league_member_limit_info(session, league_id)
    return _check(limit_info, "This league has reached its maximum of {max} members")


async def can_league_add_game_type(session: AsyncSession, league_id: str) -> LimitCheckResult:
    limit_info = await get_league_game_type_limit_info(session, league_id)
    return _check(limit_info, "This league has reached its maximum of {max} game types")


async def ensure_user_can_join_another_league(session: AsyncSession, user_id: str) -> None:
    check = await can_user_join_another_league(session, user_id)
    if not check.allowed:
        raise ServiceError(check.message)


async def ensure_league_can_add_member(session: AsyncSession, league_id: str) -> None:
    check = await can_league_add_member(session, league_id)
    if not check.allowed:
        raise ServiceError(check.message)


async def ensure_league_can_add_game_type(session: AsyncSession, league_id: str) -> None:
    check = await can_league_add_game_type(session, league_id)
    if not check.allowed:
        raise ServiceError(check.message)


@service_operation
async def get_usage(session: AsyncSession, user_id: str) -> Dict:
    """The caller's league quota, for usage indicators."""
    info = await get_user_league_limit_info(session, user_id)
    return info.model_dump()


# ---------------------------------------------------------------------------
# Admin overrides
# ---------------------------------------------------------------------------


async def _require_admin(session: AsyncSession, user_id: str) -> None:
    user = await user_service.get_user_by_id(session, user_id)
    if not user or not user.is_admin:
        raise ServiceError("Only administrators can manage limit overrides")


@service_operation
async def list_limit_overrides(session: AsyncSession, admin_user_id: str) -> List[Dict]:
    await _require_admin(session, admin_user_id)
    result = await session.execute(
        select(LimitOverride).order_by(LimitOverride.created_at.desc())
    )
    return [
        LimitOverrideResponse.model_validate(o).model_dump()
        for o in result.scalars().all()
    ]


@service_operation
async def set_limit_override(session: AsyncSession, admin_user_id: str, payload) -> Dict:
    """
    Create or replace the override for one (scope, limit type).

    A limit_value of None removes the ceiling entirely.
    """
    await _require_admin(session, admin_user_id)
    data = parse_input(LimitOverrideRequest, payload)

    if data.user_id:
        if not await user_service.get_user_by_id(session, data.user_id):
            raise ServiceError("User not found")
        override = await get_limit_override_for_user(session, data.user_id, data.limit_type)
    else:
        league = await session.get(League, data.league_id)
        if not league:
            raise ServiceError("League not found")
        override = await get_limit_override_for_league(
            session, data.league_id, data.limit_type
        )

    try:
        async with atomic(session):
            if override is None:
                override = LimitOverride(
                    limit_type=data.limit_type.value,
                    user_id=data.user_id,
                    league_id=data.league_id,
                )
                session.add(override)
            override.limit_value = data.limit_value
            override.reason = data.reason
            override.created_by = admin_user_id
    except IntegrityError:
        logger.warning(
            "Concurrent limit override write for %s (user=%s, league=%s)",
            data.limit_type.value, data.user_id, data.league_id,
        )
        raise ServiceError("An override for this limit was just changed, please retry")

    logger.info(
        "Limit override %s set to %s for user=%s league=%s by %s",
        data.limit_type.value, data.limit_value, data.user_id, data.league_id, admin_user_id,
    )
    return LimitOverrideResponse.model_validate(override).model_dump()


@service_operation
async def clear_limit_override(session: AsyncSession, admin_user_id: str, override_id: str) -> Dict:
    """Remove an override so the default limit applies again."""
    await _require_admin(session, admin_user_id)
    result = await session.execute(delete(LimitOverride).where(LimitOverride.id == override_id))
    if result.rowcount == 0:
        raise ServiceError("Limit override not found")
    logger.info("Limit override %s cleared by %s", override_id, admin_user_id)
    return {"cleared": True}
