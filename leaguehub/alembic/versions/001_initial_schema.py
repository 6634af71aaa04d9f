"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000

Complete database schema - creates all tables from scratch.

Creates:
- Core tables: users, leagues, league_members
- Invitations: league_invitations (direct invitations and shareable links)
- Roster tables: placeholder_members, teams, team_members
- Moderation tables: reports, moderation_actions
- Configuration tables: game_types, limit_overrides
- Partial unique indexes for pending invitations and pending reports
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from scratch."""
    from leaguehub.database.db import Base
    from leaguehub.database import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.create_all(bind=bind, checkfirst=True)


def downgrade() -> None:
    """Drop all tables."""
    from leaguehub.database.db import Base
    from leaguehub.database import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind, checkfirst=True)
