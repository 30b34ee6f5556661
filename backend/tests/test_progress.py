"""
backend/tests/test_progress.py
Progress is always derived from the step list, rounded half up.
"""

import pytest

from backend.features.goals.progress import compute_progress, rating_delta
from backend.models.goal import Step


def _steps(done: int, total: int):
    return [Step(id=f"s{i}", text=f"step {i}", is_completed=i < done) for i in range(total)]


class TestComputeProgress:
    def test_no_steps_is_zero(self):
        assert compute_progress([]) == 0

    @pytest.mark.parametrize(
        "done,total,expected",
        [(0, 2, 0), (1, 2, 50), (2, 2, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13)],
    )
    def test_rounds_half_up(self, done, total, expected):
        assert compute_progress(_steps(done, total)) == expected

    def test_always_within_bounds(self):
        for total in range(1, 12):
            for done in range(total + 1):
                assert 0 <= compute_progress(_steps(done, total)) <= 100


class TestRatingDelta:
    def test_is_a_tenth_of_value_rounded_down(self):
        assert rating_delta(100) == 10
        assert rating_delta(259) == 25
        assert rating_delta(5) == 0
