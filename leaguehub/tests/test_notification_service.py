"""
Tests for the derived notification feed: pending invitations plus
unacknowledged moderation actions, newest first.
"""

from datetime import timedelta

import pytest

from leaguehub.services import invitation_service, moderation_service, notification_service
from leaguehub.utils.datetime_utils import utcnow


async def _invite(db_session, inviter, league, invitee):
    return await invitation_service.invite_user(
        db_session, inviter.id, {"league_id": league.id, "invitee_user_id": invitee.id}
    )


async def _resolve_report(db_session, reporter, reported, moderator, league, action):
    created = await moderation_service.create_report(
        db_session,
        reporter.id,
        {
            "reported_user_id": reported.id,
            "league_id": league.id,
            "reason": "unsportsmanlike",
            "description": "Walked off mid-game twice",
        },
    )
    return await moderation_service.take_moderation_action(
        db_session,
        moderator.id,
        {"report_id": created.data["report_id"], "action": action, "reason": "Confirmed by others"},
    )


@pytest.mark.asyncio
async def test_empty_feed(db_session, factory):
    user = await factory.user()
    assert (await notification_service.get_notifications(db_session, user.id)).data == []
    assert (await notification_service.get_notification_count(db_session, user.id)).data == 0


@pytest.mark.asyncio
async def test_feed_combines_sources_newest_first(db_session, factory, league_with_roles):
    league = league_with_roles["league"]
    target = league_with_roles["member"]

    second_owner = await factory.user()
    other_league = await factory.league(owner=second_owner, name="Thursday Go")
    invited = await _invite(db_session, second_owner, other_league, target)

    warned = await _resolve_report(
        db_session, league_with_roles["other"], target, league_with_roles["manager"], league, "warned"
    )

    feed = await notification_service.get_notifications(db_session, target.id)
    assert [item["type"] for item in feed.data] == ["moderation_action", "league_invitation"]

    moderation, invitation = feed.data
    assert moderation["id"] == f"moderation_{warned.data['action_id']}"
    assert moderation["league_name"] == "Tuesday Chess"
    assert moderation["data"]["action_type"] == "warned"
    assert invitation["data"]["invitation_id"] == invited.data["invitation_id"]
    assert invitation["data"]["inviter_name"] == second_owner.name
    assert invitation["league_name"] == "Thursday Go"

    count = await notification_service.get_notification_count(db_session, target.id)
    assert count.data == 2


@pytest.mark.asyncio
async def test_dismissed_and_acknowledged_actions_are_hidden(db_session, league_with_roles):
    league = league_with_roles["league"]
    target = league_with_roles["member"]
    await _resolve_report(
        db_session, league_with_roles["other"], target, league_with_roles["manager"], league, "dismissed"
    )
    warned = await _resolve_report(
        db_session, league_with_roles["other"], target, league_with_roles["manager"], league, "warned"
    )
    assert (await notification_service.get_notification_count(db_session, target.id)).data == 1

    await moderation_service.acknowledge_moderation_action(db_session, target.id, warned.data["action_id"])
    assert (await notification_service.get_notification_count(db_session, target.id)).data == 0


@pytest.mark.asyncio
async def test_expired_and_archived_invitations_are_hidden(db_session, factory):
    owner = await factory.user()
    invitee = await factory.user()
    expiring = await factory.league(owner=owner)
    archived = await factory.league(owner=owner)

    first = await _invite(db_session, owner, expiring, invitee)
    await _invite(db_session, owner, archived, invitee)
    assert (await notification_service.get_notification_count(db_session, invitee.id)).data == 2

    stale = await invitation_service.get_invitation(db_session, first.data["invitation_id"])
    stale.expires_at = utcnow() - timedelta(days=1)
    archived.is_archived = True
    await db_session.flush()

    assert (await notification_service.get_notification_count(db_session, invitee.id)).data == 0
