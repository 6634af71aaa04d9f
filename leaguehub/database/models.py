"""
SQLAlchemy ORM models for the league management core.
"""

import enum
import uuid

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator

from leaguehub.database.db import Base
from leaguehub.utils.datetime_utils import utcnow, ensure_utc


def new_id() -> str:
    """Primary keys are random UUID strings."""
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Timezone-aware DateTime that always round-trips as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


class LeagueVisibility(str, enum.Enum):
    """League visibility enum."""

    PUBLIC = "public"
    PRIVATE = "private"


class LeagueMemberRole(str, enum.Enum):
    """League-scoped role, ordered member < manager < executive."""

    MEMBER = "member"
    MANAGER = "manager"
    EXECUTIVE = "executive"


class TeamMemberRole(str, enum.Enum):
    """Team-scoped role, independent of the league role."""

    MEMBER = "member"
    MANAGER = "manager"


class InvitationStatus(str, enum.Enum):
    """League invitation status enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class ReportReason(str, enum.Enum):
    """Report reason enum."""

    UNSPORTSMANLIKE = "unsportsmanlike"
    FALSE_REPORTING = "false_reporting"
    HARASSMENT = "harassment"
    SPAM = "spam"
    OTHER = "other"


class ReportStatus(str, enum.Enum):
    """Report status enum."""

    PENDING = "pending"
    RESOLVED = "resolved"


class ModerationActionType(str, enum.Enum):
    """Moderation action enum."""

    DISMISSED = "dismissed"
    WARNED = "warned"
    SUSPENDED = "suspended"
    REMOVED = "removed"
    SUSPENSION_LIFTED = "suspension_lifted"


class LimitType(str, enum.Enum):
    """Resource classes with a configurable ceiling."""

    MAX_LEAGUES_PER_USER = "max_leagues_per_user"
    MAX_MEMBERS_PER_LEAGUE = "max_members_per_league"
    MAX_GAME_TYPES_PER_LEAGUE = "max_game_types_per_league"


class GameCategory(str, enum.Enum):
    """Game type category enum."""

    HEAD_TO_HEAD = "head_to_head"
    FREE_FOR_ALL = "free_for_all"
    HIGH_SCORE = "high_score"


class User(Base):
    """User accounts. Identity is established upstream; rows are synced in."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    image = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False, server_default="false")
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    # Relationships
    league_memberships = relationship(
        "LeagueMember", back_populates="user", passive_deletes=True
    )

    __table_args__ = (Index("idx_users_username", "username"),)


class League(Base):
    """League (organization) groups."""

    __tablename__ = "leagues"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    visibility = Column(
        String(20),
        default=LeagueVisibility.PRIVATE.value,
        nullable=False,
        server_default=LeagueVisibility.PRIVATE.value,
    )
    logo = Column(String, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False, server_default="false")
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships (rows are removed by ON DELETE CASCADE, never loaded for it)
    members = relationship("LeagueMember", back_populates="league", passive_deletes=True)
    invitations = relationship("LeagueInvitation", back_populates="league", passive_deletes=True)
    placeholder_members = relationship(
        "PlaceholderMember", back_populates="league", passive_deletes=True
    )
    game_types = relationship("GameType", back_populates="league", passive_deletes=True)
    teams = relationship("Team", back_populates="league", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("visibility IN ('public', 'private')", name="ck_leagues_visibility"),
        Index("idx_leagues_name", "name"),
    )


class LeagueMember(Base):
    """Join table (User ↔ League) carrying the league-scoped role."""

    __tablename__ = "league_members"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        String(20),
        default=LeagueMemberRole.MEMBER.value,
        nullable=False,
        server_default=LeagueMemberRole.MEMBER.value,
    )
    joined_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    suspended_until = Column(UTCDateTime, nullable=True)  # Lazily expired

    # Relationships
    user = relationship("User", back_populates="league_memberships")
    league = relationship("League", back_populates="members")

    __table_args__ = (
        UniqueConstraint("user_id", "league_id", name="uq_league_members_user_league"),
        CheckConstraint(
            "role IN ('member', 'manager', 'executive')", name="ck_league_members_role"
        ),
        Index("idx_league_members_user", "user_id"),
        Index("idx_league_members_league", "league_id"),
    )


class LeagueInvitation(Base):
    """Direct invitations (invitee set) and shareable invite links (token set).

    Direct: pending → accepted | declined | expired, or deleted on cancel.
    Link: stays pending, consumed up to max_uses or until expires_at.
    """

    __tablename__ = "league_invitations"

    id = Column(String(36), primary_key=True, default=new_id)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    inviter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    invitee_user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    role = Column(String(20), default=LeagueMemberRole.MEMBER.value, nullable=False)
    status = Column(
        String(20),
        default=InvitationStatus.PENDING.value,
        nullable=False,
        server_default=InvitationStatus.PENDING.value,
    )
    token = Column(String(64), nullable=True, unique=True)
    max_uses = Column(Integer, nullable=True)
    use_count = Column(Integer, default=0, nullable=False, server_default="0")
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    expires_at = Column(UTCDateTime, nullable=True)

    # Relationships
    league = relationship("League", back_populates="invitations")
    inviter = relationship("User", foreign_keys=[inviter_id])
    invitee = relationship("User", foreign_keys=[invitee_user_id])

    __table_args__ = (
        CheckConstraint(
            "(invitee_user_id IS NOT NULL AND token IS NULL) "
            "OR (invitee_user_id IS NULL AND token IS NOT NULL)",
            name="ck_league_invitations_direct_xor_link",
        ),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired')",
            name="ck_league_invitations_status",
        ),
        Index("idx_league_invitations_league", "league_id"),
        Index("idx_league_invitations_invitee", "invitee_user_id"),
        # One pending direct invitation per (league, invitee)
        Index(
            "uq_league_invitations_pending_invitee",
            "league_id",
            "invitee_user_id",
            unique=True,
            postgresql_where=text("status = 'pending' AND invitee_user_id IS NOT NULL"),
            sqlite_where=text("status = 'pending' AND invitee_user_id IS NOT NULL"),
        ),
    )


class PlaceholderMember(Base):
    """Stand-in league member for a person without an account."""

    __tablename__ = "placeholder_members"

    id = Column(String(36), primary_key=True, default=new_id)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    display_name = Column(String, nullable=False)
    linked_user_id = Column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )  # Weak reference, set when matched to a real account
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    retired_at = Column(UTCDateTime, nullable=True)

    # Relationships
    league = relationship("League", back_populates="placeholder_members")
    linked_user = relationship("User", foreign_keys=[linked_user_id])

    __table_args__ = (
        Index("idx_placeholder_members_league", "league_id"),
        Index("idx_placeholder_members_linked_user", "linked_user_id"),
    )


class Team(Base):
    """Sub-group within a league."""

    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=new_id)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    logo = Column(String, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False, server_default="false")
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    league = relationship("League", back_populates="teams")
    members = relationship("TeamMember", back_populates="team", passive_deletes=True)

    __table_args__ = (Index("idx_teams_league", "league_id"),)


class TeamMember(Base):
    """Team membership for exactly one of a user or a placeholder member."""

    __tablename__ = "team_members"

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    placeholder_member_id = Column(
        String(36), ForeignKey("placeholder_members.id", ondelete="CASCADE"), nullable=True
    )
    role = Column(
        String(20),
        default=TeamMemberRole.MEMBER.value,
        nullable=False,
        server_default=TeamMemberRole.MEMBER.value,
    )
    joined_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    left_at = Column(UTCDateTime, nullable=True)  # Soft removal

    # Relationships
    team = relationship("Team", back_populates="members")

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND placeholder_member_id IS NULL) "
            "OR (user_id IS NULL AND placeholder_member_id IS NOT NULL)",
            name="ck_team_members_user_xor_placeholder",
        ),
        CheckConstraint("role IN ('member', 'manager')", name="ck_team_members_role"),
        Index("idx_team_members_team", "team_id"),
        Index("idx_team_members_user", "user_id"),
    )


class Report(Base):
    """Member report filed within a league."""

    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=new_id)
    reporter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reported_user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    reason = Column(String(30), nullable=False)
    description = Column(Text, nullable=False)
    evidence = Column(Text, nullable=True)
    status = Column(
        String(20),
        default=ReportStatus.PENDING.value,
        nullable=False,
        server_default=ReportStatus.PENDING.value,
    )
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    moderation_actions = relationship(
        "ModerationAction", back_populates="report", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("reporter_id <> reported_user_id", name="ck_reports_not_self"),
        CheckConstraint("status IN ('pending', 'resolved')", name="ck_reports_status"),
        Index("idx_reports_league", "league_id"),
        Index("idx_reports_reported_user", "reported_user_id"),
        Index("idx_reports_reporter", "reporter_id"),
        Index("idx_reports_status", "status"),
        # One pending report per (reporter, reported, league)
        Index(
            "uq_reports_pending_pair",
            "reporter_id",
            "reported_user_id",
            "league_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )


class ModerationAction(Base):
    """Append-only moderation audit log."""

    __tablename__ = "moderation_actions"

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(String(36), ForeignKey("reports.id", ondelete="CASCADE"), nullable=True)
    moderator_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    target_user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(30), nullable=False)
    reason = Column(Text, nullable=False)
    suspended_until = Column(UTCDateTime, nullable=True)
    acknowledged_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    report = relationship("Report", back_populates="moderation_actions")

    __table_args__ = (
        Index("idx_moderation_actions_report", "report_id"),
        Index("idx_moderation_actions_target", "target_user_id"),
        Index("idx_moderation_actions_league", "league_id"),
    )


class LimitOverride(Base):
    """Per-user or per-league ceiling for one limit type. NULL value = unlimited."""

    __tablename__ = "limit_overrides"

    id = Column(String(36), primary_key=True, default=new_id)
    limit_type = Column(String(40), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=True)
    limit_value = Column(Integer, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND league_id IS NULL) "
            "OR (user_id IS NULL AND league_id IS NOT NULL)",
            name="ck_limit_overrides_single_scope",
        ),
        UniqueConstraint("user_id", "limit_type", name="uq_limit_overrides_user_type"),
        UniqueConstraint("league_id", "limit_type", name="uq_limit_overrides_league_type"),
        Index("idx_limit_overrides_user", "user_id"),
        Index("idx_limit_overrides_league", "league_id"),
    )


class GameType(Base):
    """League-defined game with a category-specific JSON config."""

    __tablename__ = "game_types"

    id = Column(String(36), primary_key=True, default=new_id)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    logo = Column(String, nullable=True)
    category = Column(String(20), nullable=False)
    config = Column(Text, nullable=False)  # JSON, validated against the category at write time
    is_archived = Column(Boolean, default=False, nullable=False, server_default="false")
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    league = relationship("League", back_populates="game_types")

    __table_args__ = (
        CheckConstraint(
            "category IN ('head_to_head', 'free_for_all', 'high_score')",
            name="ck_game_types_category",
        ),
        Index("idx_game_types_league", "league_id"),
    )


# Case-insensitive name uniqueness within a league
Index(
    "uq_game_types_league_lower_name",
    GameType.league_id,
    func.lower(GameType.name),
    unique=True,
)
Index(
    "uq_teams_league_lower_name",
    Team.league_id,
    func.lower(Team.name),
    unique=True,
)
