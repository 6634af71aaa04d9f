"""
Tests for league_service: lifecycle, discovery, join/leave and the
sole-executive invariant.
"""

import pytest
from sqlalchemy import select, func

from leaguehub.database.models import (
    League,
    LeagueMember,
    LeagueMemberRole,
    LeagueVisibility,
)
from leaguehub.services import league_service, member_service


async def _member_count(db_session, league_id):
    result = await db_session.execute(
        select(func.count(LeagueMember.id)).where(LeagueMember.league_id == league_id)
    )
    return result.scalar_one()


# ──────────────────────────────────────────────────────────────
# Create / read / update
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_league_makes_creator_sole_executive(db_session, factory):
    user = await factory.user()
    result = await league_service.create_league(
        db_session, user.id, {"name": "  Friday Darts ", "description": "Weekly darts"}
    )
    assert result.ok
    league = result.data
    assert league["name"] == "Friday Darts"
    assert league["visibility"] == LeagueVisibility.PRIVATE.value
    assert league["is_archived"] is False

    membership = await member_service.get_league_member(db_session, user.id, league["id"])
    assert membership.role == LeagueMemberRole.EXECUTIVE.value
    assert await _member_count(db_session, league["id"]) == 1


@pytest.mark.asyncio
async def test_create_league_validation_errors(db_session, factory):
    user = await factory.user()
    result = await league_service.create_league(
        db_session, user.id, {"name": "", "description": "x", "visibility": "secret"}
    )
    assert result.error == "Validation failed"
    assert set(result.field_errors) == {"name", "visibility"}
    count = await db_session.execute(select(func.count(League.id)))
    assert count.scalar_one() == 0


@pytest.mark.asyncio
async def test_get_league_with_role(db_session, league_with_roles):
    league = league_with_roles["league"]
    result = await league_service.get_league_with_role(
        db_session, league.id, league_with_roles["manager"].id
    )
    assert result.ok
    assert result.data["role"] == "manager"
    assert result.data["member_count"] == 4


@pytest.mark.asyncio
async def test_get_league_requires_membership(db_session, factory, league_with_roles):
    outsider = await factory.user()
    result = await league_service.get_league(
        db_session, league_with_roles["league"].id, outsider.id
    )
    assert result.error == "You are not a member of this league"


@pytest.mark.asyncio
async def test_only_executive_can_update_settings(db_session, league_with_roles):
    league = league_with_roles["league"]
    denied = await league_service.update_league(
        db_session, league.id, {"name": "Hijacked"}, league_with_roles["manager"].id
    )
    assert denied.error == "You don't have permission to edit league settings"

    updated = await league_service.update_league(
        db_session,
        league.id,
        {"name": "Tuesday Chess Club", "visibility": "public", "logo": ""},
        league_with_roles["executive"].id,
    )
    assert updated.ok
    assert updated.data["name"] == "Tuesday Chess Club"
    assert updated.data["visibility"] == "public"
    assert updated.data["logo"] is None


# ──────────────────────────────────────────────────────────────
# Archive / delete
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_archive_and_unarchive(db_session, league_with_roles):
    league = league_with_roles["league"]
    executive = league_with_roles["executive"]

    assert (await league_service.archive_league(db_session, league.id, executive.id)).ok
    again = await league_service.archive_league(db_session, league.id, executive.id)
    assert again.error == "League is already archived"

    hidden = await league_service.get_league(db_session, league.id, executive.id)
    assert hidden.error == league_service.LEAGUE_ARCHIVED

    archived = await league_service.get_archived_league(db_session, league.id, executive.id)
    assert archived.ok and archived.data["member_count"] == 4

    listed = await league_service.get_archived_leagues(db_session, executive.id)
    assert [entry["id"] for entry in listed.data] == [league.id]
    assert (await league_service.get_user_leagues(db_session, executive.id)).data == []

    assert (await league_service.unarchive_league(db_session, league.id, executive.id)).ok
    assert (await league_service.get_league(db_session, league.id, executive.id)).ok


@pytest.mark.asyncio
async def test_manager_cannot_archive_or_view_archived(db_session, league_with_roles):
    league = league_with_roles["league"]
    manager = league_with_roles["manager"]
    denied = await league_service.archive_league(db_session, league.id, manager.id)
    assert denied.error == "You don't have permission to archive the league"

    await league_service.archive_league(db_session, league.id, league_with_roles["executive"].id)
    view = await league_service.get_archived_league(db_session, league.id, manager.id)
    assert view.error == "Only executives can view archived leagues"


@pytest.mark.asyncio
async def test_cannot_edit_archived_league(db_session, league_with_roles):
    league = league_with_roles["league"]
    executive = league_with_roles["executive"]
    await league_service.archive_league(db_session, league.id, executive.id)
    result = await league_service.update_league(
        db_session, league.id, {"name": "New"}, executive.id
    )
    assert result.error == "Cannot edit an archived league"


@pytest.mark.asyncio
async def test_delete_league_cascades_memberships(db_session, league_with_roles):
    league = league_with_roles["league"]
    league_id = league.id
    denied = await league_service.delete_league(
        db_session, league_id, league_with_roles["manager"].id
    )
    assert denied.error == "You don't have permission to delete the league"

    result = await league_service.delete_league(
        db_session, league_id, league_with_roles["executive"].id
    )
    assert result.ok
    remaining = await db_session.execute(
        select(func.count(League.id)).where(League.id == league_id)
    )
    assert remaining.scalar_one() == 0
    assert await _member_count(db_session, league_id) == 0


# ──────────────────────────────────────────────────────────────
# Discovery and join
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_search_public_leagues(db_session, factory):
    owner = await factory.user()
    searcher = await factory.user()
    public = await factory.league(
        owner=owner, name="Sunday Chess", visibility=LeagueVisibility.PUBLIC
    )
    await factory.league(owner=owner, name="Secret Chess")
    archived = await factory.league(
        owner=owner, name="Old Chess", visibility=LeagueVisibility.PUBLIC
    )
    archived.is_archived = True
    await db_session.flush()

    result = await league_service.search_public_leagues(db_session, "chess", searcher.id)
    assert result.ok
    assert [entry["id"] for entry in result.data] == [public.id]
    assert result.data[0]["member_count"] == 1
    assert result.data[0]["is_member"] is False

    own = await league_service.search_public_leagues(db_session, "CHESS", owner.id)
    assert own.data[0]["is_member"] is True


@pytest.mark.asyncio
async def test_search_rejects_empty_query(db_session, factory):
    user = await factory.user()
    result = await league_service.search_public_leagues(db_session, "   ", user.id)
    assert result.error == "Invalid search query"


@pytest.mark.asyncio
async def test_join_public_league(db_session, factory):
    owner = await factory.user()
    joiner = await factory.user()
    league = await factory.league(owner=owner, visibility=LeagueVisibility.PUBLIC)

    result = await league_service.join_public_league(db_session, league.id, joiner.id)
    assert result.ok
    membership = await member_service.get_league_member(db_session, joiner.id, league.id)
    assert membership.role == LeagueMemberRole.MEMBER.value

    again = await league_service.join_public_league(db_session, league.id, joiner.id)
    assert again.error == "You are already a member of this league"


@pytest.mark.asyncio
async def test_private_league_requires_invitation(db_session, factory):
    owner = await factory.user()
    joiner = await factory.user()
    league = await factory.league(owner=owner)
    result = await league_service.join_public_league(db_session, league.id, joiner.id)
    assert result.error == "This league is private and requires an invitation"


@pytest.mark.asyncio
async def test_join_missing_league(db_session, factory):
    joiner = await factory.user()
    result = await league_service.join_public_league(db_session, "no-such-league", joiner.id)
    assert result.error == "League not found"


# ──────────────────────────────────────────────────────────────
# Leave
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sole_executive_cannot_leave(db_session, league_with_roles):
    league = league_with_roles["league"]
    result = await league_service.leave_league(
        db_session, league.id, league_with_roles["executive"].id
    )
    assert result.error == league_service.SOLE_EXECUTIVE_LEAVE
    assert await _member_count(db_session, league.id) == 4


@pytest.mark.asyncio
async def test_executive_can_leave_when_another_exists(db_session, factory, league_with_roles):
    league = league_with_roles["league"]
    second = await factory.user()
    await factory.member(league, second, LeagueMemberRole.EXECUTIVE)

    result = await league_service.leave_league(
        db_session, league.id, league_with_roles["executive"].id
    )
    assert result.ok
    assert await league_service.get_executive_count(db_session, league.id) == 1


@pytest.mark.asyncio
async def test_member_can_leave(db_session, league_with_roles):
    league = league_with_roles["league"]
    member = league_with_roles["member"]
    assert (await league_service.leave_league(db_session, league.id, member.id)).ok
    assert await member_service.get_league_member(db_session, member.id, league.id) is None
