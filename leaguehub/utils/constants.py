"""
Constants used across the league management core.
"""

# Resource limits (defaults when no override exists)
MAX_LEAGUES_PER_USER = 3
MAX_MEMBERS_PER_LEAGUE = 20
MAX_GAME_TYPES_PER_LEAGUE = 20

# A limit is "near" when current usage is within this many of the max
NEAR_LIMIT_THRESHOLD = 1

# Field lengths
NAME_MAX_LENGTH = 100
LEAGUE_NAME_MAX_LENGTH = 100
LEAGUE_DESCRIPTION_MAX_LENGTH = 500
TEAM_NAME_MAX_LENGTH = 100
TEAM_DESCRIPTION_MAX_LENGTH = 500
GAME_TYPE_NAME_MAX_LENGTH = 100
GAME_TYPE_DESCRIPTION_MAX_LENGTH = 500
RULES_MAX_LENGTH = 10000
SEARCH_QUERY_MAX_LENGTH = 100
USER_SEARCH_RESULT_LIMIT = 10

# Moderation
REPORT_DESCRIPTION_MAX_LENGTH = 2000
REPORT_EVIDENCE_MAX_LENGTH = 2000
MODERATION_REASON_MAX_LENGTH = 500
MAX_SUSPENSION_DAYS = 365
SUSPENSION_LIFTED_REASON = "Suspension lifted early by moderator"

# Invite links
MAX_INVITE_LINK_DAYS = 30
MAX_INVITE_LINK_USES = 100
