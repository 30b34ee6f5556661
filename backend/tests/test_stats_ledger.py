"""
backend/tests/test_stats_ledger.py
Stats ledger: lazy monthly reset, zero floor, best-effort apply.
"""

import logging
from datetime import date, datetime, timezone

import pytest

from backend.core.errors import LedgerWriteError
from backend.features.stats.ledger import StatsLedger, reset_if_stale
from backend.models.stats import LedgerEffect, StatCounter, UserStats

JAN = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
FEB = datetime(2024, 2, 3, 9, 0, tzinfo=timezone.utc)


class TestResetIfStale:
    def test_later_month_zeroes_monthly_counter(self):
        stats = UserStats(user_id="u", goals_created_this_month=4, last_month_reset=date(2024, 1, 15))
        assert reset_if_stale(stats, FEB) == {
            "goals_created_this_month": 0,
            "last_month_reset": "2024-02-01",
        }

    def test_same_month_is_current(self):
        stats = UserStats(user_id="u", last_month_reset=date(2024, 1, 1))
        assert reset_if_stale(stats, JAN) is None

    def test_earlier_month_is_not_a_reset(self):
        stats = UserStats(user_id="u", last_month_reset=date(2024, 2, 1))
        assert reset_if_stale(stats, JAN) is None

    def test_new_year_counts_as_later(self):
        stats = UserStats(user_id="u", last_month_reset=date(2023, 12, 1))
        assert reset_if_stale(stats, JAN) is not None


class TestMonthlyCounter:
    def test_first_touch_in_new_month_resets(self):
        ledger = StatsLedger()
        ledger.increment_goals_created_this_month("alice", now=JAN)
        ledger.increment_goals_created_this_month("alice", now=JAN)
        ledger.increment_active_goals("alice")

        ledger.increment_goals_created_this_month("alice", now=FEB)

        stats = ledger.stats_store.get("alice")
        assert stats.goals_created_this_month == 1
        assert stats.last_month_reset == date(2024, 2, 1)
        assert stats.active_goals_now == 1

    def test_get_stats_applies_reset(self):
        ledger = StatsLedger()
        ledger.increment_goals_created_this_month("alice", now=JAN)
        ledger.increment_completed_goals("alice")

        view = ledger.get_stats("alice", now=FEB)
        assert view.goals_created_this_month == 0
        assert view.completed_goals == 1


class TestFloorAndRating:
    def test_decrement_floors_at_zero_and_logs(self, caplog):
        ledger = StatsLedger()
        with caplog.at_level(logging.WARNING, logger="goalkeeper"):
            ledger.decrement_active_goals("alice")

        assert ledger.stats_store.get("alice").active_goals_now == 0
        assert any(record.getMessage() == "ledger.floor_hit" for record in caplog.records)

    def test_rating_is_signed(self):
        ledger = StatsLedger()
        ledger.decrement_rating("alice", 5)
        assert ledger.get_stats("alice").rating == -5
        ledger.increment_rating("alice", 12)
        assert ledger.get_stats("alice").rating == 7

    def test_blog_posts(self):
        ledger = StatsLedger()
        ledger.increment_blog_posts("alice")
        ledger.increment_blog_posts("alice", amount=2)
        assert ledger.get_stats("alice").blog_posts == 3

    def test_unknown_user_reads_zeroes(self):
        view = StatsLedger().get_stats("nobody")
        assert view.model_dump() == {
            "goals_created_this_month": 0,
            "active_goals_now": 0,
            "completed_goals": 0,
            "closed_tasks": 0,
            "blog_posts": 0,
            "rating": 0,
        }


class _BrokenProfiles:
    def adjust_rating(self, user_id, delta):
        raise RuntimeError("profile store unavailable")

    def get(self, user_id):
        return None


class TestApply:
    def test_failures_do_not_stop_remaining_effects(self):
        ledger = StatsLedger(profile_store=_BrokenProfiles())
        effects = [
            LedgerEffect(user_id="alice", counter=StatCounter.RATING, delta=10),
            LedgerEffect(user_id="alice", counter=StatCounter.ACTIVE_GOALS_NOW, delta=1),
        ]

        with pytest.raises(LedgerWriteError) as exc_info:
            ledger.apply(effects)

        assert exc_info.value.code == "ledger_write_failed"
        assert ledger.stats_store.get("alice").active_goals_now == 1

    def test_empty_effect_list_is_a_no_op(self):
        ledger = StatsLedger()
        ledger.apply([])
        assert ledger.stats_store.get("alice") is None
