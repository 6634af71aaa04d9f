"""
Pydantic models for service input validation and response shaping.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from leaguehub.database.models import (
    GameCategory,
    LeagueMemberRole,
    LeagueVisibility,
    LimitType,
    ReportReason,
)
from leaguehub.utils.constants import (
    GAME_TYPE_DESCRIPTION_MAX_LENGTH,
    GAME_TYPE_NAME_MAX_LENGTH,
    LEAGUE_DESCRIPTION_MAX_LENGTH,
    LEAGUE_NAME_MAX_LENGTH,
    MAX_INVITE_LINK_DAYS,
    MAX_INVITE_LINK_USES,
    MAX_SUSPENSION_DAYS,
    MODERATION_REASON_MAX_LENGTH,
    NAME_MAX_LENGTH,
    REPORT_DESCRIPTION_MAX_LENGTH,
    REPORT_EVIDENCE_MAX_LENGTH,
    RULES_MAX_LENGTH,
    SEARCH_QUERY_MAX_LENGTH,
    TEAM_DESCRIPTION_MAX_LENGTH,
    TEAM_NAME_MAX_LENGTH,
)

LOGO_MAX_LENGTH = 500


class InputModel(BaseModel):
    """Base for request payloads: surrounding whitespace is ignored."""

    model_config = ConfigDict(str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(InputModel):
    """Account synced from the upstream identity provider."""

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$")
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    image: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)
    is_admin: bool = False


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: str
    image: Optional[str] = None


class SearchQuery(InputModel):
    query: str = Field(min_length=1, max_length=SEARCH_QUERY_MAX_LENGTH)


# ---------------------------------------------------------------------------
# Leagues
# ---------------------------------------------------------------------------


class LeagueCreate(InputModel):
    """Request to create a league."""

    name: str = Field(min_length=1, max_length=LEAGUE_NAME_MAX_LENGTH)
    description: str = Field(min_length=1, max_length=LEAGUE_DESCRIPTION_MAX_LENGTH)
    visibility: LeagueVisibility = LeagueVisibility.PRIVATE
    logo: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)


class LeagueUpdate(InputModel):
    """Partial league update; unset fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=LEAGUE_NAME_MAX_LENGTH)
    description: Optional[str] = Field(
        default=None, min_length=1, max_length=LEAGUE_DESCRIPTION_MAX_LENGTH
    )
    visibility: Optional[LeagueVisibility] = None
    logo: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)


class LeagueResponse(BaseModel):
    """League data."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    visibility: str
    logo: Optional[str] = None
    is_archived: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Members & invitations
# ---------------------------------------------------------------------------


class UpdateMemberRoleRequest(InputModel):
    target_user_id: str = Field(min_length=1)
    role: LeagueMemberRole


class LeagueMemberResponse(BaseModel):
    """League member joined with the user's public profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    league_id: str
    role: str
    joined_at: datetime
    suspended_until: Optional[datetime] = None
    name: Optional[str] = None
    username: Optional[str] = None
    image: Optional[str] = None


class InviteUserRequest(InputModel):
    """Direct invitation of an existing user."""

    league_id: str = Field(min_length=1)
    invitee_user_id: str = Field(min_length=1)
    role: LeagueMemberRole = LeagueMemberRole.MEMBER
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=MAX_INVITE_LINK_DAYS)


class InviteLinkCreate(InputModel):
    """Shareable invite link settings. Omitted limits mean no limit."""

    league_id: str = Field(min_length=1)
    role: LeagueMemberRole = LeagueMemberRole.MEMBER
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=MAX_INVITE_LINK_DAYS)
    max_uses: Optional[int] = Field(default=None, ge=1, le=MAX_INVITE_LINK_USES)


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: str
    inviter_id: str
    invitee_user_id: Optional[str] = None
    role: str
    status: str
    token: Optional[str] = None
    max_uses: Optional[int] = None
    use_count: int
    created_at: datetime
    expires_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------


class PlaceholderCreate(InputModel):
    display_name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class PlaceholderUpdate(InputModel):
    display_name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class PlaceholderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: str
    display_name: str
    linked_user_id: Optional[str] = None
    created_at: datetime
    retired_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class TeamCreate(InputModel):
    name: str = Field(min_length=1, max_length=TEAM_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=TEAM_DESCRIPTION_MAX_LENGTH)
    logo: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)


class TeamUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=TEAM_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=TEAM_DESCRIPTION_MAX_LENGTH)
    logo: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)


class TeamMemberAdd(InputModel):
    """Add exactly one of a league user or a placeholder member to a team."""

    user_id: Optional[str] = None
    placeholder_member_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_single_identity(self):
        """Ensure exactly one identity is provided."""
        if not self.user_id and not self.placeholder_member_id:
            raise ValueError("Either user_id or placeholder_member_id must be provided")
        if self.user_id and self.placeholder_member_id:
            raise ValueError("Provide either user_id or placeholder_member_id, not both")
        return self


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    is_archived: bool
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TeamMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    team_id: str
    user_id: Optional[str] = None
    placeholder_member_id: Optional[str] = None
    role: str
    joined_at: datetime
    left_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class ReportCreate(InputModel):
    """Report a league member."""

    reported_user_id: str = Field(min_length=1)
    league_id: str = Field(min_length=1)
    reason: ReportReason
    description: str = Field(min_length=10, max_length=REPORT_DESCRIPTION_MAX_LENGTH)
    evidence: Optional[str] = Field(default=None, max_length=REPORT_EVIDENCE_MAX_LENGTH)


class ModerationActionRequest(InputModel):
    """Resolve a pending report. suspension_days is required when suspending."""

    report_id: str = Field(min_length=1)
    action: Literal["dismissed", "warned", "suspended", "removed"]
    reason: str = Field(min_length=5, max_length=MODERATION_REASON_MAX_LENGTH)
    suspension_days: Optional[int] = Field(default=None, ge=1, le=MAX_SUSPENSION_DAYS)


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reporter_id: str
    reported_user_id: str
    league_id: str
    reason: str
    description: str
    evidence: Optional[str] = None
    status: str
    created_at: datetime


class ModerationActionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    report_id: Optional[str] = None
    moderator_id: Optional[str] = None
    target_user_id: str
    league_id: str
    action: str
    reason: str
    suspended_until: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Game types
# ---------------------------------------------------------------------------

ScoreOrder = Literal["highest_wins", "lowest_wins"]
Rules = Optional[str]


class HeadToHeadConfig(InputModel):
    """Two sides face each other."""

    scoring_type: Literal["win_loss", "score_based"]
    score_description: Optional[str] = Field(default=None, max_length=50)
    draws_allowed: bool = False
    min_players_per_side: int = Field(ge=1, le=10)
    max_players_per_side: int = Field(ge=1, le=10)
    rules: Rules = Field(default=None, max_length=RULES_MAX_LENGTH)

    @model_validator(mode="after")
    def validate_side_sizes(self):
        if self.max_players_per_side < self.min_players_per_side:
            raise ValueError("Max players per side must be at least min players per side")
        return self


class FreeForAllConfig(InputModel):
    """Everyone against everyone, ranked by finish or score."""

    scoring_type: Literal["ranked_finish", "score_based"]
    score_order: ScoreOrder
    min_players: int = Field(ge=2, le=50)
    max_players: int = Field(ge=2, le=50)
    rules: Rules = Field(default=None, max_length=RULES_MAX_LENGTH)

    @model_validator(mode="after")
    def validate_player_counts(self):
        if self.max_players < self.min_players:
            raise ValueError("Max players must be at least min players")
        return self


class HighScoreConfig(InputModel):
    """Individual or team attempts compared on a single score."""

    score_order: ScoreOrder
    score_description: str = Field(min_length=1, max_length=50)
    participant_type: Literal["individual", "team"]
    rules: Rules = Field(default=None, max_length=RULES_MAX_LENGTH)


GAME_CONFIG_SCHEMAS = {
    GameCategory.HEAD_TO_HEAD: HeadToHeadConfig,
    GameCategory.FREE_FOR_ALL: FreeForAllConfig,
    GameCategory.HIGH_SCORE: HighScoreConfig,
}


class GameTypeCreate(InputModel):
    """Create a game type; config is validated against the category's schema."""

    name: str = Field(min_length=1, max_length=GAME_TYPE_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=GAME_TYPE_DESCRIPTION_MAX_LENGTH)
    logo: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)
    category: GameCategory
    config: Dict[str, Any]


class GameTypeUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=GAME_TYPE_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=GAME_TYPE_DESCRIPTION_MAX_LENGTH)
    logo: Optional[str] = Field(default=None, max_length=LOGO_MAX_LENGTH)
    category: Optional[GameCategory] = None
    config: Optional[Dict[str, Any]] = None


class GameTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    category: str
    config: Dict[str, Any]
    is_archived: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------


class LimitInfo(BaseModel):
    """Current usage against the effective maximum (None = unlimited)."""

    current: int
    max: Optional[int] = None
    is_at_limit: bool
    is_near_limit: bool


class LimitCheckResult(BaseModel):
    allowed: bool
    limit_info: LimitInfo
    message: Optional[str] = None


class LimitOverrideRequest(InputModel):
    """Admin override for exactly one of a user or a league."""

    limit_type: LimitType
    user_id: Optional[str] = None
    league_id: Optional[str] = None
    limit_value: Optional[int] = Field(default=None, ge=0)
    reason: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def validate_scope(self):
        if bool(self.user_id) == bool(self.league_id):
            raise ValueError("Provide exactly one of user_id or league_id")
        if self.limit_type == LimitType.MAX_LEAGUES_PER_USER and not self.user_id:
            raise ValueError("max_leagues_per_user overrides apply to users")
        if self.limit_type != LimitType.MAX_LEAGUES_PER_USER and not self.league_id:
            raise ValueError(f"{self.limit_type.value} overrides apply to leagues")
        return self


class LimitOverrideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    limit_type: str
    user_id: Optional[str] = None
    league_id: Optional[str] = None
    limit_value: Optional[int] = None
    created_by: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationItem(BaseModel):
    """Derived notification: a pending invitation or a moderation action."""

    id: str
    type: Literal["league_invitation", "moderation_action"]
    created_at: datetime
    league_id: str
    league_name: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationList(BaseModel):
    items: List[NotificationItem]
    count: int
