"""
League role hierarchy.

Roles are totally ordered member < manager < executive. Acting on another
member requires a strictly higher rank, so peers can never act on peers.
"""

from typing import List, Optional, Union

from leaguehub.database.models import LeagueMemberRole

ROLE_HIERARCHY = {
    LeagueMemberRole.MEMBER: 1,
    LeagueMemberRole.MANAGER: 2,
    LeagueMemberRole.EXECUTIVE: 3,
}

ROLE_LABELS = {
    LeagueMemberRole.MEMBER: "Member",
    LeagueMemberRole.MANAGER: "Manager",
    LeagueMemberRole.EXECUTIVE: "Executive",
}

ALL_ROLES: List[LeagueMemberRole] = [
    LeagueMemberRole.MEMBER,
    LeagueMemberRole.MANAGER,
    LeagueMemberRole.EXECUTIVE,
]


def coerce_role(role: Union[str, LeagueMemberRole, None]) -> Optional[LeagueMemberRole]:
    """Return the enum for a stored role string, or None if unknown."""
    if isinstance(role, LeagueMemberRole):
        return role
    try:
        return LeagueMemberRole(role)
    except ValueError:
        return None


def hierarchy_rank(role) -> int:
    """Rank of a role; unknown roles rank 0 and can act on nothing."""
    resolved = coerce_role(role)
    return ROLE_HIERARCHY.get(resolved, 0) if resolved else 0


def can_act_on_role(actor_role, target_role) -> bool:
    actor_rank = hierarchy_rank(actor_role)
    if actor_rank == 0 or coerce_role(target_role) is None:
        return False
    return actor_rank > hierarchy_rank(target_role)


def get_assignable_roles(actor_role) -> List[LeagueMemberRole]:
    """All roles at or below the actor's own rank."""
    actor_rank = hierarchy_rank(actor_role)
    return [role for role in ALL_ROLES if ROLE_HIERARCHY[role] <= actor_rank]
