"""Step/progress calculator."""

from typing import Iterable

from backend.models.goal import Step


def compute_progress(steps: Iterable[Step]) -> int:
    """
    Percentage of completed steps, rounded half-up; 0 when there are no steps.

    Integer arithmetic keeps x.5 cases exact: floor(100*c/t + 1/2) == (200c + t) // 2t.
    """
    steps = list(steps)
    total = len(steps)
    if total == 0:
        return 0
    completed = sum(1 for step in steps if step.is_completed)
    return (200 * completed + total) // (2 * total)


def rating_delta(value: int) -> int:
    """Rating/contribution weight of one step or habit day for a goal of this value."""
    return value // 10
