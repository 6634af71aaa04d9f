"""
Moderation service: member reports, moderator actions and suspensions.

Resolving a report is a single unit: the moderation action row, the report's
move to resolved and the side effect on the member (suspension or removal)
are written together or not at all. Suspensions expire lazily; nothing
sweeps them, every check compares suspended_until to now.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from leaguehub.database.db import atomic
from leaguehub.database.models import (
    LeagueMember,
    ModerationAction,
    ModerationActionType,
    Report,
    ReportStatus,
    User,
)
from leaguehub.models.schemas import (
    ModerationActionRequest,
    ModerationActionResponse,
    ReportCreate,
    ReportResponse,
)
from leaguehub.services import member_service
from leaguehub.services.member_service import membership_is_suspended
from leaguehub.services.permissions import LeagueAction, can_perform_action
from leaguehub.services.result import (
    VALIDATION_FAILED,
    ServiceError,
    parse_input,
    service_operation,
)
from leaguehub.services.roles import can_act_on_role
from leaguehub.utils.constants import SUSPENSION_LIFTED_REASON
from leaguehub.utils.datetime_utils import is_in_future, utcnow

logger = logging.getLogger(__name__)

REPORT_NOT_FOUND = "Report not found"
REPORT_RESOLVED = "This report has already been resolved"
DUPLICATE_PENDING_REPORT = "You already have a pending report against this member"

# Actions that discipline the target and therefore need them to still be a member
DISCIPLINARY_ACTIONS = {
    ModerationActionType.WARNED,
    ModerationActionType.SUSPENDED,
    ModerationActionType.REMOVED,
}


def action_to_dict(action: ModerationAction, **extra) -> Dict:
    data = ModerationActionResponse.model_validate(action).model_dump()
    data.update(extra)
    return data


async def get_report_by_id(session: AsyncSession, report_id: str) -> Optional[Report]:
    if not report_id:
        return None
    return await session.get(Report, report_id)


async def has_pending_report(
    session: AsyncSession, reporter_id: str, reported_user_id: str, league_id: str
) -> bool:
    result = await session.execute(
        select(Report.id).where(
            Report.reporter_id == reporter_id,
            Report.reported_user_id == reported_user_id,
            Report.league_id == league_id,
            Report.status == ReportStatus.PENDING.value,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _reports_with_users(session: AsyncSession, *criteria) -> List[Dict]:
    reporter = aliased(User)
    reported = aliased(User)
    result = await session.execute(
        select(Report, reporter.name, reported.name)
        .outerjoin(reporter, reporter.id == Report.reporter_id)
        .outerjoin(reported, reported.id == Report.reported_user_id)
        .where(*criteria)
        .order_by(Report.created_at.desc())
    )
    reports = []
    for report, reporter_name, reported_name in result.all():
        data = ReportResponse.model_validate(report).model_dump()
        data.update(reporter_name=reporter_name, reported_user_name=reported_name)
        reports.append(data)
    return reports


async def get_moderation_history(
    session: AsyncSession, target_user_id: str, league_id: str, action: Optional[ModerationActionType] = None
) -> List[Dict]:
    """Actions taken against a member in a league, oldest first, with moderator names."""
    stmt = (
        select(ModerationAction, User.name)
        .outerjoin(User, User.id == ModerationAction.moderator_id)
        .where(
            ModerationAction.target_user_id == target_user_id,
            ModerationAction.league_id == league_id,
        )
        .order_by(ModerationAction.created_at)
    )
    if action is not None:
        stmt = stmt.where(ModerationAction.action == action.value)
    result = await session.execute(stmt)
    return [action_to_dict(a, moderator_name=name) for a, name in result.all()]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@service_operation
async def create_report(session: AsyncSession, reporter_id: str, payload) -> Dict:
    """
    File a report against another league member.

    Suspended members cannot report. One pending report per
    (reporter, reported member, league) at a time.
    """
    data = parse_input(ReportCreate, payload)
    league_id = data.league_id

    if reporter_id == data.reported_user_id:
        raise ServiceError("You cannot report yourself")

    reporter = await member_service.require_permission(
        session, reporter_id, league_id, LeagueAction.REPORT_MEMBER,
        "You don't have permission to report members",
    )
    if membership_is_suspended(reporter):
        raise ServiceError("You cannot report members while suspended")

    if not await member_service.get_league_member(session, data.reported_user_id, league_id):
        raise ServiceError("The user you are trying to report is not a league member")

    if await has_pending_report(session, reporter_id, data.reported_user_id, league_id):
        raise ServiceError(DUPLICATE_PENDING_REPORT)

    report = Report(
        reporter_id=reporter_id,
        reported_user_id=data.reported_user_id,
        league_id=league_id,
        reason=data.reason.value,
        description=data.description,
        evidence=data.evidence or None,
        status=ReportStatus.PENDING.value,
    )
    try:
        async with atomic(session):
            session.add(report)
    except IntegrityError:
        logger.warning(
            "Concurrent duplicate report by %s against %s in league %s",
            reporter_id, data.reported_user_id, league_id,
        )
        raise ServiceError(DUPLICATE_PENDING_REPORT)

    logger.info(
        "User %s reported user %s in league %s (%s)",
        reporter_id, data.reported_user_id, league_id, data.reason.value,
    )
    return {"created": True, "report_id": report.id}


@service_operation
async def get_pending_reports(session: AsyncSession, user_id: str, league_id: str) -> List[Dict]:
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.VIEW_REPORTS,
        "You don't have permission to view reports",
    )
    return await _reports_with_users(
        session, Report.league_id == league_id, Report.status == ReportStatus.PENDING.value
    )


@service_operation
async def get_pending_report_count(session: AsyncSession, user_id: str, league_id: str) -> int:
    """Badge count; members who cannot view reports simply see 0."""
    membership = await member_service.require_membership(session, user_id, league_id)
    if not can_perform_action(membership.role, LeagueAction.VIEW_REPORTS):
        return 0
    result = await session.execute(
        select(func.count(Report.id)).where(
            Report.league_id == league_id, Report.status == ReportStatus.PENDING.value
        )
    )
    return result.scalar_one()


@service_operation
async def get_report_detail(session: AsyncSession, user_id: str, report_id: str) -> Dict:
    report = await get_report_by_id(session, report_id)
    if not report:
        raise ServiceError(REPORT_NOT_FOUND)
    await member_service.require_permission(
        session, user_id, report.league_id, LeagueAction.VIEW_REPORTS,
        "You don't have permission to view reports",
    )
    reports = await _reports_with_users(session, Report.id == report.id)
    history = await get_moderation_history(session, report.reported_user_id, report.league_id)
    return {"report": reports[0], "target_history": history}


@service_operation
async def get_own_submitted_reports(session: AsyncSession, user_id: str, league_id: str) -> List[Dict]:
    await member_service.require_membership(session, user_id, league_id)
    return await _reports_with_users(
        session, Report.reporter_id == user_id, Report.league_id == league_id
    )


@service_operation
async def get_own_report_count(session: AsyncSession, user_id: str, league_id: str) -> int:
    result = await session.execute(
        select(func.count(Report.id)).where(
            Report.reporter_id == user_id, Report.league_id == league_id
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Moderator actions
# ---------------------------------------------------------------------------


async def _record_action(session: AsyncSession, **values) -> ModerationAction:
    action = ModerationAction(**values)
    session.add(action)
    await session.flush()
    return action


async def _resolve_report(session: AsyncSession, report: Report) -> None:
    # Conditional on pending so two moderators cannot both resolve it
    result = await session.execute(
        update(Report)
        .where(Report.id == report.id, Report.status == ReportStatus.PENDING.value)
        .values(status=ReportStatus.RESOLVED.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ServiceError(REPORT_RESOLVED)


async def _apply_side_effect(
    session: AsyncSession, action_type: ModerationActionType, report: Report, suspended_until
) -> None:
    if action_type == ModerationActionType.SUSPENDED:
        await session.execute(
            update(LeagueMember)
            .where(
                LeagueMember.user_id == report.reported_user_id,
                LeagueMember.league_id == report.league_id,
            )
            .values(suspended_until=suspended_until)
            .execution_options(synchronize_session=False)
        )
    elif action_type == ModerationActionType.REMOVED:
        await session.execute(
            delete(LeagueMember)
            .where(
                LeagueMember.user_id == report.reported_user_id,
                LeagueMember.league_id == report.league_id,
            )
            .execution_options(synchronize_session=False)
        )


@service_operation
async def take_moderation_action(session: AsyncSession, moderator_id: str, payload) -> Dict:
    """
    Resolve a pending report with dismiss, warn, suspend or remove.

    Moderators need MODERATE_MEMBERS, cannot handle reports they filed, and
    cannot discipline an equal or higher role. Warn/suspend/remove require the
    target to still be a member; a dismissal does not.
    """
    data = parse_input(ModerationActionRequest, payload)
    action_type = ModerationActionType(data.action)
    if action_type == ModerationActionType.SUSPENDED and data.suspension_days is None:
        raise ServiceError(
            VALIDATION_FAILED, {"suspension_days": "Suspension days are required when suspending"}
        )

    report = await get_report_by_id(session, data.report_id)
    if not report:
        raise ServiceError(REPORT_NOT_FOUND)
    if report.status == ReportStatus.RESOLVED.value:
        raise ServiceError(REPORT_RESOLVED)

    moderator = await member_service.require_permission(
        session, moderator_id, report.league_id, LeagueAction.MODERATE_MEMBERS,
        "You don't have permission to moderate members",
    )
    if report.reporter_id == moderator_id:
        raise ServiceError("You cannot moderate a report you submitted")

    target = await member_service.get_league_member(
        session, report.reported_user_id, report.league_id
    )
    if (
        action_type != ModerationActionType.DISMISSED
        and target
        and not can_act_on_role(moderator.role, target.role)
    ):
        raise ServiceError("You cannot take action against someone with an equal or higher role")
    if action_type in DISCIPLINARY_ACTIONS and not target:
        raise ServiceError("The reported user is no longer a member of this league")

    suspended_until = None
    if action_type == ModerationActionType.SUSPENDED:
        suspended_until = utcnow() + timedelta(days=data.suspension_days)

    async with atomic(session):
        action = await _record_action(
            session,
            report_id=report.id,
            moderator_id=moderator_id,
            target_user_id=report.reported_user_id,
            league_id=report.league_id,
            action=action_type.value,
            reason=data.reason,
            suspended_until=suspended_until,
        )
        await _resolve_report(session, report)
        await _apply_side_effect(session, action_type, report, suspended_until)

    # Bulk statements above bypass the identity map
    await session.refresh(report)
    if target is not None:
        if action_type == ModerationActionType.REMOVED:
            session.expunge(target)
        else:
            await session.refresh(target)

    logger.info(
        "Moderator %s %s user %s in league %s (report %s)",
        moderator_id, action_type.value, report.reported_user_id, report.league_id, report.id,
    )
    return {"action_taken": True, "action_id": action.id}


@service_operation
async def lift_suspension(
    session: AsyncSession, moderator_id: str, target_user_id: str, league_id: str
) -> Dict:
    """End an active suspension early, recording a standalone action."""
    moderator = await member_service.require_permission(
        session, moderator_id, league_id, LeagueAction.MODERATE_MEMBERS,
        "You don't have permission to lift suspensions",
    )
    target = await member_service.get_league_member(session, target_user_id, league_id)
    if not target:
        raise ServiceError("The member is no longer part of this league")
    if not membership_is_suspended(target):
        raise ServiceError("This member is not currently suspended")
    if not can_act_on_role(moderator.role, target.role):
        raise ServiceError(
            "You cannot lift the suspension of someone with an equal or higher role"
        )

    async with atomic(session):
        action = await _record_action(
            session,
            report_id=None,
            moderator_id=moderator_id,
            target_user_id=target_user_id,
            league_id=league_id,
            action=ModerationActionType.SUSPENSION_LIFTED.value,
            reason=SUSPENSION_LIFTED_REASON,
            suspended_until=None,
        )
        target.suspended_until = None

    logger.info("Moderator %s lifted suspension of user %s in league %s", moderator_id, target_user_id, league_id)
    return {"lifted": True, "action_id": action.id}


# ---------------------------------------------------------------------------
# History and acknowledgement
# ---------------------------------------------------------------------------


@service_operation
async def get_member_moderation_history(
    session: AsyncSession, requester_id: str, target_user_id: str, league_id: str
) -> List[Dict]:
    await member_service.require_permission(
        session, requester_id, league_id, LeagueAction.VIEW_REPORTS,
        "You don't have permission to view moderation history",
    )
    return await get_moderation_history(session, target_user_id, league_id)


@service_operation
async def get_own_moderation_history(session: AsyncSession, user_id: str, league_id: str) -> Dict:
    """The member's warnings plus their suspension end, if still active."""
    membership = await member_service.require_membership(session, user_id, league_id)
    warnings = await get_moderation_history(
        session, user_id, league_id, action=ModerationActionType.WARNED
    )
    suspended_until = membership.suspended_until
    return {
        "warnings": warnings,
        "suspended_until": suspended_until if is_in_future(suspended_until) else None,
    }


@service_operation
async def get_own_warning_count(session: AsyncSession, user_id: str, league_id: str) -> int:
    result = await session.execute(
        select(func.count(ModerationAction.id)).where(
            ModerationAction.target_user_id == user_id,
            ModerationAction.league_id == league_id,
            ModerationAction.action == ModerationActionType.WARNED.value,
        )
    )
    return result.scalar_one()


@service_operation
async def acknowledge_moderation_action(session: AsyncSession, user_id: str, action_id: str) -> Dict:
    """Only the target may acknowledge, and only once."""
    result = await session.execute(
        update(ModerationAction)
        .where(
            ModerationAction.id == action_id,
            ModerationAction.target_user_id == user_id,
            ModerationAction.acknowledged_at.is_(None),
        )
        .values(acknowledged_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ServiceError("Moderation action not found or already acknowledged")
    logger.info("User %s acknowledged moderation action %s", user_id, action_id)
    return {"acknowledged": True}


@service_operation
async def get_suspended_members(session: AsyncSession, user_id: str, league_id: str) -> List[Dict]:
    """Members whose suspension is still in the future."""
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.MODERATE_MEMBERS,
        "You don't have permission to view suspended members",
    )
    result = await session.execute(
        select(LeagueMember, User)
        .join(User, User.id == LeagueMember.user_id)
        .where(
            LeagueMember.league_id == league_id,
            LeagueMember.suspended_until.isnot(None),
            LeagueMember.suspended_until > utcnow(),
        )
        .order_by(LeagueMember.suspended_until)
    )
    return [member_service.member_to_dict(member, user) for member, user in result.all()]
