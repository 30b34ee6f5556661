"""
Ledger effects per goal lifecycle transition.

Each builder is pure: it looks at the goal as it was before the transition
and returns the counter deltas the transition owes. StatsLedger.apply is the
single place they are written.
"""

from typing import List

from backend.models.goal import GoalBase, InvitationStatus, Participant
from backend.models.stats import LedgerEffect, StatCounter


def _effect(user_id: str, counter: StatCounter, delta: int) -> LedgerEffect:
    return LedgerEffect(user_id=user_id, counter=counter, delta=delta)


def goal_created(owner_id: str) -> List[LedgerEffect]:
    return [
        _effect(owner_id, StatCounter.GOALS_CREATED_THIS_MONTH, 1),
        _effect(owner_id, StatCounter.ACTIVE_GOALS_NOW, 1),
    ]


def goal_completed(before: GoalBase) -> List[LedgerEffect]:
    effects = []
    # An archived goal already left the active count
    if before.is_active:
        effects.append(_effect(before.owner_id, StatCounter.ACTIVE_GOALS_NOW, -1))
    effects.append(_effect(before.owner_id, StatCounter.COMPLETED_GOALS, 1))
    effects.append(_effect(before.owner_id, StatCounter.RATING, before.value))
    return effects


def goal_archived(before: GoalBase) -> List[LedgerEffect]:
    if before.is_archived or before.is_completed:
        return []
    return [_effect(before.owner_id, StatCounter.ACTIVE_GOALS_NOW, -1)]


def goal_unarchived(before: GoalBase) -> List[LedgerEffect]:
    if not before.is_archived or before.is_completed:
        return []
    return [_effect(before.owner_id, StatCounter.ACTIVE_GOALS_NOW, 1)]


def goal_deleted(before: GoalBase) -> List[LedgerEffect]:
    if not before.is_active:
        return []
    return [_effect(before.owner_id, StatCounter.ACTIVE_GOALS_NOW, -1)]


def step_toggled(user_id: str, is_completed: bool, weight: int) -> List[LedgerEffect]:
    sign = 1 if is_completed else -1
    return [
        _effect(user_id, StatCounter.CLOSED_TASKS, sign),
        _effect(user_id, StatCounter.RATING, sign * weight),
    ]


def habit_day_marked(owner_id: str, earns: bool, revokes: bool, weight: int) -> List[LedgerEffect]:
    if earns:
        return [_effect(owner_id, StatCounter.RATING, weight)]
    if revokes:
        return [_effect(owner_id, StatCounter.RATING, -weight)]
    return []


def invitation_accepted(user_id: str) -> List[LedgerEffect]:
    return [_effect(user_id, StatCounter.ACTIVE_GOALS_NOW, 1)]


def participant_removed(participant: Participant) -> List[LedgerEffect]:
    if participant.invitation_status != InvitationStatus.ACCEPTED:
        return []
    return [_effect(participant.user_id, StatCounter.ACTIVE_GOALS_NOW, -1)]


def entry_published(user_id: str) -> List[LedgerEffect]:
    return [_effect(user_id, StatCounter.BLOG_POSTS, 1)]
