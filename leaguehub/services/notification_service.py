"""
Notification feed derived from current state.

Nothing is stored: the feed is rebuilt on each read from pending direct
invitations and unacknowledged moderation actions against the user.
"""

import logging
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.models import League, ModerationAction, ModerationActionType
from leaguehub.models.schemas import NotificationItem
from leaguehub.services import invitation_service
from leaguehub.services.result import service_operation

logger = logging.getLogger(__name__)

LEAGUE_INVITATION = "league_invitation"
MODERATION_ACTION = "moderation_action"


async def _invitation_notifications(session: AsyncSession, user_id: str) -> List[NotificationItem]:
    items = []
    for inv in await invitation_service.list_pending_for_user(session, user_id):
        items.append(
            NotificationItem(
                id=f"invitation_{inv['id']}",
                type=LEAGUE_INVITATION,
                created_at=inv["created_at"],
                league_id=inv["league_id"],
                league_name=inv.get("league_name"),
                data={
                    "invitation_id": inv["id"],
                    "role": inv["role"],
                    "inviter_name": inv.get("inviter_name"),
                    "expires_at": inv.get("expires_at"),
                },
            )
        )
    return items


async def _moderation_notifications(session: AsyncSession, user_id: str) -> List[NotificationItem]:
    result = await session.execute(
        select(ModerationAction, League.name, League.logo)
        .join(League, League.id == ModerationAction.league_id)
        .where(
            ModerationAction.target_user_id == user_id,
            ModerationAction.acknowledged_at.is_(None),
            ModerationAction.action != ModerationActionType.DISMISSED.value,
        )
    )
    return [
        NotificationItem(
            id=f"moderation_{action.id}",
            type=MODERATION_ACTION,
            created_at=action.created_at,
            league_id=action.league_id,
            league_name=league_name,
            data={
                "action_id": action.id,
                "action_type": action.action,
                "reason": action.reason,
                "suspended_until": action.suspended_until,
                "league_logo": league_logo,
            },
        )
        for action, league_name, league_logo in result.all()
    ]


async def collect_notifications(session: AsyncSession, user_id: str) -> List[NotificationItem]:
    items = await _invitation_notifications(session, user_id)
    items.extend(await _moderation_notifications(session, user_id))
    items.sort(key=lambda item: item.created_at, reverse=True)
    return items


@service_operation
async def get_notifications(session: AsyncSession, user_id: str) -> List[Dict]:
    """Newest first."""
    return [item.model_dump() for item in await collect_notifications(session, user_id)]


@service_operation
async def get_notification_count(session: AsyncSession, user_id: str) -> int:
    return len(await collect_notifications(session, user_id))
