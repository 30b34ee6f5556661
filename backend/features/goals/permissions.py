"""
Who may do what to a goal.

Solo goals are invisible to anyone but the owner (NotFound). Group goals are
visible, so a caller without the right role gets Forbidden instead.
"""

from backend.core.errors import ForbiddenError, NotFoundError
from backend.models.goal import Goal, GroupGoal, InvitationStatus, ParticipantRole

_MANAGER_ROLES = (ParticipantRole.OWNER, ParticipantRole.ADMIN)


def _accepted_role(goal: GroupGoal, user_id: str):
    participant = goal.find_participant(user_id)
    if participant is None or participant.invitation_status != InvitationStatus.ACCEPTED:
        return None
    return participant.role


def require_owner(goal: Goal, requester_id: str) -> None:
    if goal.owner_id != requester_id:
        raise NotFoundError("Goal not found")


def require_contributor(goal: Goal, requester_id: str) -> None:
    """Step and habit mutations."""
    if not isinstance(goal, GroupGoal):
        require_owner(goal, requester_id)
        return
    if _accepted_role(goal, requester_id) is None:
        raise ForbiddenError("Only accepted participants can update this goal")


def require_manager(goal: Goal, requester_id: str) -> None:
    """Complete, archive, unarchive and edit."""
    if not isinstance(goal, GroupGoal):
        require_owner(goal, requester_id)
        return
    if _accepted_role(goal, requester_id) not in _MANAGER_ROLES:
        raise ForbiddenError("Only the owner or an admin can manage this goal")


def can_invite(goal: GroupGoal, requester_id: str) -> bool:
    role = _accepted_role(goal, requester_id)
    if role in _MANAGER_ROLES:
        return True
    return role == ParticipantRole.MEMBER and goal.group_settings.allow_members_to_invite


def is_contributor(goal: Goal, user_id: str) -> bool:
    if isinstance(goal, GroupGoal):
        return _accepted_role(goal, user_id) is not None
    return goal.owner_id == user_id
