"""
Tests for the role hierarchy and the static permission tables.

The tables are small enough to check exhaustively.
"""

import pytest

from leaguehub.database.models import LeagueMemberRole, TeamMemberRole
from leaguehub.services import permissions, roles
from leaguehub.services.permissions import LeagueAction, LeaguePage, TeamAction

MEMBER = LeagueMemberRole.MEMBER
MANAGER = LeagueMemberRole.MANAGER
EXECUTIVE = LeagueMemberRole.EXECUTIVE


# ──────────────────────────────────────────────────────────────
# Role hierarchy
# ──────────────────────────────────────────────────────────────


def test_hierarchy_is_strictly_ordered():
    assert roles.hierarchy_rank(MEMBER) < roles.hierarchy_rank(MANAGER) < roles.hierarchy_rank(EXECUTIVE)


def test_hierarchy_accepts_stored_strings():
    assert roles.hierarchy_rank("executive") == roles.hierarchy_rank(EXECUTIVE)
    assert roles.hierarchy_rank("owner") == 0
    assert roles.hierarchy_rank(None) == 0


@pytest.mark.parametrize("actor", list(LeagueMemberRole))
@pytest.mark.parametrize("target", list(LeagueMemberRole))
def test_can_act_on_role_requires_strictly_higher_rank(actor, target):
    expected = roles.ROLE_HIERARCHY[actor] > roles.ROLE_HIERARCHY[target]
    assert roles.can_act_on_role(actor, target) is expected


def test_peers_cannot_act_on_each_other():
    for role in LeagueMemberRole:
        assert roles.can_act_on_role(role, role) is False


def test_unknown_roles_are_denied():
    assert roles.can_act_on_role("owner", MEMBER) is False
    assert roles.can_act_on_role(EXECUTIVE, "owner") is False
    assert roles.can_act_on_role(None, None) is False


def test_assignable_roles_are_at_or_below_own_rank():
    assert roles.get_assignable_roles(MEMBER) == [MEMBER]
    assert roles.get_assignable_roles(MANAGER) == [MEMBER, MANAGER]
    assert roles.get_assignable_roles(EXECUTIVE) == [MEMBER, MANAGER, EXECUTIVE]
    assert roles.get_assignable_roles("nobody") == []


# ──────────────────────────────────────────────────────────────
# League actions
# ──────────────────────────────────────────────────────────────


def test_member_permissions():
    assert set(permissions.get_permitted_actions(MEMBER)) == {
        LeagueAction.VIEW_MEMBERS,
        LeagueAction.PLAY_GAMES,
        LeagueAction.CREATE_TEAMS,
        LeagueAction.REPORT_MEMBER,
    }


def test_manager_lacks_executive_only_actions():
    executive_only = {
        LeagueAction.MANAGE_ROLES,
        LeagueAction.EDIT_SETTINGS,
        LeagueAction.ARCHIVE_LEAGUE,
        LeagueAction.UNARCHIVE_LEAGUE,
        LeagueAction.DELETE_LEAGUE,
        LeagueAction.TRANSFER_EXECUTIVE,
    }
    for action in executive_only:
        assert permissions.can_perform_action(MANAGER, action) is False
        assert permissions.can_perform_action(EXECUTIVE, action) is True


def test_manager_can_moderate_and_invite():
    for action in (
        LeagueAction.INVITE_MEMBERS,
        LeagueAction.REMOVE_MEMBERS,
        LeagueAction.VIEW_REPORTS,
        LeagueAction.MODERATE_MEMBERS,
        LeagueAction.CREATE_GAME_TYPES,
        LeagueAction.CREATE_PLACEHOLDERS,
    ):
        assert permissions.can_perform_action(MANAGER, action) is True
        assert permissions.can_perform_action(MEMBER, action) is False


def test_executive_holds_every_action():
    assert set(permissions.get_permitted_actions(EXECUTIVE)) == set(LeagueAction)


def test_permissions_grow_with_rank():
    member = set(permissions.get_permitted_actions(MEMBER))
    manager = set(permissions.get_permitted_actions(MANAGER))
    executive = set(permissions.get_permitted_actions(EXECUTIVE))
    assert member < manager < executive


def test_action_lookup_accepts_strings_and_denies_unknowns():
    assert permissions.can_perform_action("manager", "invite_members") is True
    assert permissions.can_perform_action("manager", "launch_rockets") is False
    assert permissions.can_perform_action("owner", LeagueAction.VIEW_MEMBERS) is False
    assert permissions.get_permitted_actions("owner") == []


# ──────────────────────────────────────────────────────────────
# Team actions and pages
# ──────────────────────────────────────────────────────────────


@pytest.mark.parametrize("action", list(TeamAction))
def test_team_actions_belong_to_team_managers_only(action):
    assert permissions.can_perform_team_action(TeamMemberRole.MANAGER, action) is True
    assert permissions.can_perform_team_action(TeamMemberRole.MEMBER, action) is False


def test_team_action_unknown_inputs():
    assert permissions.can_perform_team_action("captain", TeamAction.EDIT_TEAM) is False
    assert permissions.can_perform_team_action(TeamMemberRole.MANAGER, "fly") is False


def test_settings_page_is_executive_only():
    assert permissions.can_access_page(EXECUTIVE, LeaguePage.SETTINGS) is True
    assert permissions.can_access_page(MANAGER, LeaguePage.SETTINGS) is False
    assert permissions.can_access_page(MEMBER, LeaguePage.SETTINGS) is False


def test_moderation_page_needs_manager_or_above():
    assert permissions.can_access_page(MEMBER, LeaguePage.MODERATION) is False
    assert permissions.can_access_page(MANAGER, LeaguePage.MODERATION) is True
    assert permissions.can_access_page(EXECUTIVE, "moderation") is True


@pytest.mark.parametrize(
    "page",
    [p for p in LeaguePage if p not in (LeaguePage.SETTINGS, LeaguePage.MODERATION)],
)
def test_other_pages_are_open_to_every_member(page):
    for role in LeagueMemberRole:
        assert permissions.can_access_page(role, page) is True


def test_unknown_page_is_denied():
    assert permissions.can_access_page(EXECUTIVE, "billing") is False
