"""
Static permission tables.

Role → allowed league actions, team role → allowed team actions, and
page → roles allowed to see it. Plain dict-of-sets lookups so the whole rule
set can be audited (and tested) by enumeration.
"""

import enum
from typing import List

from leaguehub.database.models import LeagueMemberRole, TeamMemberRole
from leaguehub.services.roles import coerce_role


class LeagueAction(str, enum.Enum):
    """Actions gated by league role."""

    VIEW_MEMBERS = "view_members"
    PLAY_GAMES = "play_games"
    CREATE_GAME_TYPES = "create_game_types"
    CREATE_TOURNAMENTS = "create_tournaments"
    CREATE_SEASONS = "create_seasons"
    CREATE_TEAMS = "create_teams"
    INVITE_MEMBERS = "invite_members"
    CREATE_PLACEHOLDERS = "create_placeholders"
    REMOVE_MEMBERS = "remove_members"
    MANAGE_ROLES = "manage_roles"
    EDIT_SETTINGS = "edit_settings"
    ARCHIVE_LEAGUE = "archive_league"
    UNARCHIVE_LEAGUE = "unarchive_league"
    DELETE_LEAGUE = "delete_league"
    TRANSFER_EXECUTIVE = "transfer_executive"
    REPORT_MEMBER = "report_member"
    VIEW_REPORTS = "view_reports"
    MODERATE_MEMBERS = "moderate_members"


class TeamAction(str, enum.Enum):
    """Actions gated by team role."""

    EDIT_TEAM = "edit_team"
    ARCHIVE_TEAM = "archive_team"
    UNARCHIVE_TEAM = "unarchive_team"
    DELETE_TEAM = "delete_team"
    ADD_MEMBERS = "add_members"
    REMOVE_MEMBERS = "remove_members"


class LeaguePage(str, enum.Enum):
    """League pages with role-gated visibility."""

    DASHBOARD = "dashboard"
    SETTINGS = "settings"
    MEMBERS = "members"
    GAMES = "games"
    TEAMS = "teams"
    TOURNAMENTS = "tournaments"
    SEASONS = "seasons"
    MODERATION = "moderation"


LEAGUE_PERMISSIONS = {
    LeagueMemberRole.MEMBER: frozenset(
        {
            LeagueAction.VIEW_MEMBERS,
            LeagueAction.PLAY_GAMES,
            LeagueAction.CREATE_TEAMS,
            LeagueAction.REPORT_MEMBER,
        }
    ),
    LeagueMemberRole.MANAGER: frozenset(
        {
            LeagueAction.VIEW_MEMBERS,
            LeagueAction.PLAY_GAMES,
            LeagueAction.CREATE_GAME_TYPES,
            LeagueAction.CREATE_TOURNAMENTS,
            LeagueAction.CREATE_SEASONS,
            LeagueAction.CREATE_TEAMS,
            LeagueAction.INVITE_MEMBERS,
            LeagueAction.CREATE_PLACEHOLDERS,
            LeagueAction.REMOVE_MEMBERS,
            LeagueAction.REPORT_MEMBER,
            LeagueAction.VIEW_REPORTS,
            LeagueAction.MODERATE_MEMBERS,
        }
    ),
    LeagueMemberRole.EXECUTIVE: frozenset(
        {
            LeagueAction.VIEW_MEMBERS,
            LeagueAction.PLAY_GAMES,
            LeagueAction.CREATE_GAME_TYPES,
            LeagueAction.CREATE_TOURNAMENTS,
            LeagueAction.CREATE_SEASONS,
            LeagueAction.CREATE_TEAMS,
            LeagueAction.INVITE_MEMBERS,
            LeagueAction.CREATE_PLACEHOLDERS,
            LeagueAction.REMOVE_MEMBERS,
            LeagueAction.MANAGE_ROLES,
            LeagueAction.EDIT_SETTINGS,
            LeagueAction.ARCHIVE_LEAGUE,
            LeagueAction.UNARCHIVE_LEAGUE,
            LeagueAction.DELETE_LEAGUE,
            LeagueAction.TRANSFER_EXECUTIVE,
            LeagueAction.REPORT_MEMBER,
            LeagueAction.VIEW_REPORTS,
            LeagueAction.MODERATE_MEMBERS,
        }
    ),
}

TEAM_PERMISSIONS = {
    TeamMemberRole.MEMBER: frozenset(),
    TeamMemberRole.MANAGER: frozenset(
        {
            TeamAction.EDIT_TEAM,
            TeamAction.ARCHIVE_TEAM,
            TeamAction.UNARCHIVE_TEAM,
            TeamAction.DELETE_TEAM,
            TeamAction.ADD_MEMBERS,
            TeamAction.REMOVE_MEMBERS,
        }
    ),
}

_ALL_LEAGUE_ROLES = frozenset(LeagueMemberRole)

PAGE_PERMISSIONS = {
    LeaguePage.DASHBOARD: _ALL_LEAGUE_ROLES,
    LeaguePage.MEMBERS: _ALL_LEAGUE_ROLES,
    LeaguePage.GAMES: _ALL_LEAGUE_ROLES,
    LeaguePage.TEAMS: _ALL_LEAGUE_ROLES,
    LeaguePage.TOURNAMENTS: _ALL_LEAGUE_ROLES,
    LeaguePage.SEASONS: _ALL_LEAGUE_ROLES,
    LeaguePage.SETTINGS: frozenset({LeagueMemberRole.EXECUTIVE}),
    LeaguePage.MODERATION: frozenset({LeagueMemberRole.MANAGER, LeagueMemberRole.EXECUTIVE}),
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def can_perform_action(role, action) -> bool:
    """True if ``role`` holds league ``action``; unknown inputs are denied."""
    resolved_action = _coerce(LeagueAction, action)
    if resolved_action is None:
        return False
    return resolved_action in LEAGUE_PERMISSIONS.get(coerce_role(role), frozenset())


def get_permitted_actions(role) -> List[LeagueAction]:
    return sorted(LEAGUE_PERMISSIONS.get(coerce_role(role), frozenset()), key=lambda a: a.value)


def can_perform_team_action(team_role, action) -> bool:
    resolved_role = _coerce(TeamMemberRole, team_role)
    resolved_action = _coerce(TeamAction, action)
    if resolved_role is None or resolved_action is None:
        return False
    return resolved_action in TEAM_PERMISSIONS[resolved_role]


def can_access_page(role, page) -> bool:
    resolved_page = _coerce(LeaguePage, page)
    resolved_role = coerce_role(role)
    if resolved_page is None or resolved_role is None:
        return False
    return resolved_role in PAGE_PERMISSIONS[resolved_page]
