"""
Habit tracker: per-date completion records and streak statistics.

Records are keyed by UTC calendar day. Gaps between recorded days are not
inferred; only the records present count.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union

from backend.core.errors import InvalidOperationError
from backend.models.goal import Activity, ActivityType, GoalBase, GoalType, HabitDay, HabitStats


@dataclass
class HabitMark:
    """Outcome of marking one habit day."""

    day: date
    is_completed: bool
    previously_completed: Optional[bool]  # None when the day had no record

    @property
    def earns_rating(self) -> bool:
        return self.is_completed

    @property
    def revokes_rating(self) -> bool:
        # Only a day that was complete can give rating back
        return not self.is_completed and self.previously_completed is True


def normalize_day(moment: Union[datetime, date]) -> date:
    if isinstance(moment, datetime):
        aware = moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
        return aware.astimezone(timezone.utc).date()
    return moment


def mark_day(
    goal: GoalBase,
    moment: Union[datetime, date],
    is_completed: bool,
    *,
    now: Optional[datetime] = None,
    user_id: Optional[str] = None,
) -> HabitMark:
    """Upsert the record for moment's UTC day and append one activity entry."""
    day = normalize_day(moment)
    occurred_at = now or datetime.now(timezone.utc)

    previously_completed: Optional[bool] = None
    for record in goal.habit_completed_days:
        if record.date == day:
            previously_completed = record.is_completed
            record.is_completed = is_completed
            break
    else:
        goal.habit_completed_days.append(HabitDay(date=day, is_completed=is_completed))

    goal.activity.append(
        Activity(
            activity_type=ActivityType.MARK_HABIT_DAY if is_completed else ActivityType.UNMARK_HABIT_DAY,
            date=occurred_at,
            user_id=user_id,
        )
    )
    return HabitMark(day=day, is_completed=is_completed, previously_completed=previously_completed)


def compute_stats(goal: GoalBase) -> HabitStats:
    if goal.goal_type != GoalType.HABIT:
        raise InvalidOperationError("This operation is only available for habit goals")

    records = goal.habit_completed_days
    total_days = len(records)
    completed_days = sum(1 for record in records if record.is_completed)
    success_rate = round(completed_days / total_days * 100, 2) if total_days else 0.0

    current_streak = 0
    for record in sorted(records, key=lambda r: r.date, reverse=True):
        if not record.is_completed:
            break
        current_streak += 1

    longest_streak = 0
    run = 0
    for record in sorted(records, key=lambda r: r.date):
        if record.is_completed:
            run += 1
            longest_streak = max(longest_streak, run)
        else:
            run = 0

    return HabitStats(
        total_days=total_days,
        completed_days=completed_days,
        success_rate=success_rate,
        current_streak=current_streak,
        longest_streak=longest_streak,
    )
