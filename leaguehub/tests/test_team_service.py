"""
Tests for team_service: team roles independent of league roles, name
uniqueness, archive/delete and soft membership removal.
"""

import pytest
from sqlalchemy import select, func

from leaguehub.database.models import PlaceholderMember, TeamMember, TeamMemberRole
from leaguehub.services import team_service


async def _create(db_session, league, user, name="Knights"):
    return await team_service.create_team(
        db_session, league.id, {"name": name, "description": "Weekend squad"}, user.id
    )


@pytest.mark.asyncio
async def test_creator_becomes_team_manager(db_session, league_with_roles):
    league = league_with_roles["league"]
    member = league_with_roles["member"]
    result = await _create(db_session, league, member)
    assert result.ok
    assert result.data["name"] == "Knights"
    assert result.data["is_archived"] is False

    membership = await team_service.get_active_team_member(db_session, result.data["id"], member.id)
    assert membership.role == TeamMemberRole.MANAGER.value

    detail = await team_service.get_team(db_session, result.data["id"], league_with_roles["other"].id)
    assert [m["name"] for m in detail.data["members"]] == ["Mel Member"]


@pytest.mark.asyncio
async def test_team_names_are_unique_per_league_case_insensitive(db_session, factory, league_with_roles):
    league = league_with_roles["league"]
    await _create(db_session, league, league_with_roles["member"])

    duplicate = await _create(db_session, league, league_with_roles["other"], name="KNIGHTS")
    assert duplicate.error == "Validation failed"
    assert duplicate.field_errors == {"name": team_service.DUPLICATE_NAME}

    other_owner = await factory.user()
    other_league = await factory.league(owner=other_owner)
    elsewhere = await _create(db_session, other_league, other_owner)
    assert elsewhere.ok


@pytest.mark.asyncio
async def test_outsider_cannot_create_or_view(db_session, factory, league_with_roles):
    league = league_with_roles["league"]
    outsider = await factory.user()
    denied = await _create(db_session, league, outsider)
    assert denied.error == "You are not a member of this league"

    created = await _create(db_session, league, league_with_roles["member"])
    hidden = await team_service.get_team(db_session, created.data["id"], outsider.id)
    assert hidden.error == "You are not a member of this league"


@pytest.mark.asyncio
async def test_league_role_does_not_grant_team_rights(db_session, league_with_roles):
    created = await _create(db_session, league_with_roles["league"], league_with_roles["member"])
    team_id = created.data["id"]

    result = await team_service.update_team(
        db_session, team_id, {"name": "Taken Over"}, league_with_roles["executive"].id
    )
    assert result.error == "You do not have permission to edit this team"

    archive = await team_service.archive_team(db_session, team_id, league_with_roles["executive"].id)
    assert archive.error == "You do not have permission to archive this team"


@pytest.mark.asyncio
async def test_update_team(db_session, league_with_roles):
    league = league_with_roles["league"]
    manager = league_with_roles["member"]
    first = await _create(db_session, league, manager)
    await _create(db_session, league, manager, name="Rooks")

    clash = await team_service.update_team(db_session, first.data["id"], {"name": "rooks"}, manager.id)
    assert clash.field_errors == {"name": team_service.DUPLICATE_NAME}

    # Renaming to its own name with different case is allowed
    same = await team_service.update_team(db_session, first.data["id"], {"name": "KNIGHTS"}, manager.id)
    assert same.ok and same.data["name"] == "KNIGHTS"

    cleared = await team_service.update_team(
        db_session, first.data["id"], {"description": ""}, manager.id
    )
    assert cleared.data["description"] is None


@pytest.mark.asyncio
async def test_archive_and_unarchive(db_session, league_with_roles):
    manager = league_with_roles["member"]
    created = await _create(db_session, league_with_roles["league"], manager)
    team_id = created.data["id"]

    assert (await team_service.unarchive_team(db_session, team_id, manager.id)).error == "Team is not archived"
    assert (await team_service.archive_team(db_session, team_id, manager.id)).ok
    assert (await team_service.archive_team(db_session, team_id, manager.id)).error == "Team is already archived"
    assert (await team_service.unarchive_team(db_session, team_id, manager.id)).ok


@pytest.mark.asyncio
async def test_delete_team_removes_members(db_session, league_with_roles):
    manager = league_with_roles["member"]
    created = await _create(db_session, league_with_roles["league"], manager)
    team_id = created.data["id"]
    await team_service.add_team_member(
        db_session, team_id, {"user_id": league_with_roles["other"].id}, manager.id
    )

    assert (await team_service.delete_team(db_session, team_id, manager.id)).ok
    remaining = await db_session.execute(
        select(func.count(TeamMember.id)).where(TeamMember.team_id == team_id)
    )
    assert remaining.scalar_one() == 0


# ──────────────────────────────────────────────────────────────
# Team membership
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_add_members(db_session, factory, league_with_roles):
    league = league_with_roles["league"]
    manager = league_with_roles["member"]
    created = await _create(db_session, league, manager)
    team_id = created.data["id"]

    added = await team_service.add_team_member(
        db_session, team_id, {"user_id": league_with_roles["other"].id}, manager.id
    )
    assert added.ok
    assert added.data["role"] == TeamMemberRole.MEMBER.value

    again = await team_service.add_team_member(
        db_session, team_id, {"user_id": league_with_roles["other"].id}, manager.id
    )
    assert again.error == "User is already a member of this team"

    outsider = await factory.user()
    not_in_league = await team_service.add_team_member(
        db_session, team_id, {"user_id": outsider.id}, manager.id
    )
    assert not_in_league.error == "User is not a member of this league"

    neither = await team_service.add_team_member(db_session, team_id, {}, manager.id)
    assert neither.error == "Validation failed"

    denied = await team_service.add_team_member(
        db_session, team_id, {"user_id": league_with_roles["manager"].id}, league_with_roles["other"].id
    )
    assert denied.error == "You do not have permission to add members to this team"


@pytest.mark.asyncio
async def test_add_placeholder_members(db_session, league_with_roles):
    league = league_with_roles["league"]
    manager = league_with_roles["member"]
    created = await _create(db_session, league, manager)
    team_id = created.data["id"]

    guest = PlaceholderMember(league_id=league.id, display_name="Guest Gary")
    db_session.add(guest)
    await db_session.flush()

    added = await team_service.add_team_member(
        db_session, team_id, {"placeholder_member_id": guest.id}, manager.id
    )
    assert added.ok
    detail = await team_service.get_team(db_session, team_id, manager.id)
    assert sorted(m["name"] for m in detail.data["members"]) == ["Guest Gary", "Mel Member"]

    duplicate = await team_service.add_team_member(
        db_session, team_id, {"placeholder_member_id": guest.id}, manager.id
    )
    assert duplicate.error == "Placeholder member is already a member of this team"


@pytest.mark.asyncio
async def test_retired_placeholder_cannot_join(db_session, league_with_roles):
    from leaguehub.utils.datetime_utils import utcnow

    league = league_with_roles["league"]
    manager = league_with_roles["member"]
    created = await _create(db_session, league, manager)
    retired = PlaceholderMember(league_id=league.id, display_name="Old Olga", retired_at=utcnow())
    db_session.add(retired)
    await db_session.flush()

    result = await team_service.add_team_member(
        db_session, created.data["id"], {"placeholder_member_id": retired.id}, manager.id
    )
    assert result.error == "Placeholder member has been retired"


@pytest.mark.asyncio
async def test_remove_and_leave_are_soft(db_session, league_with_roles):
    league = league_with_roles["league"]
    manager = league_with_roles["member"]
    other = league_with_roles["other"]
    created = await _create(db_session, league, manager)
    team_id = created.data["id"]
    added = await team_service.add_team_member(db_session, team_id, {"user_id": other.id}, manager.id)

    removed = await team_service.remove_team_member(db_session, added.data["id"], manager.id)
    assert removed.ok
    row = await db_session.get(TeamMember, added.data["id"])
    assert row.left_at is not None

    gone = await team_service.remove_team_member(db_session, added.data["id"], manager.id)
    assert gone.error == "Team member not found"

    # A departed member can be added back
    readded = await team_service.add_team_member(db_session, team_id, {"user_id": other.id}, manager.id)
    assert readded.ok
    assert (await team_service.leave_team(db_session, team_id, other.id)).ok
    not_member = await team_service.leave_team(db_session, team_id, other.id)
    assert not_member.error == "You are not a member of this team"


@pytest.mark.asyncio
async def test_team_listings(db_session, league_with_roles):
    league = league_with_roles["league"]
    manager = league_with_roles["member"]
    other = league_with_roles["other"]
    knights = await _create(db_session, league, manager)
    await _create(db_session, league, other, name="Bishops")
    await team_service.add_team_member(db_session, knights.data["id"], {"user_id": other.id}, manager.id)

    teams = await team_service.get_league_teams(db_session, league.id, league_with_roles["executive"].id)
    assert [(t["name"], t["member_count"]) for t in teams.data] == [("Bishops", 1), ("Knights", 2)]

    mine = await team_service.get_my_teams(db_session, league.id, other.id)
    assert {t["name"]: t["team_role"] for t in mine.data} == {
        "Bishops": TeamMemberRole.MANAGER.value,
        "Knights": TeamMemberRole.MEMBER.value,
    }
