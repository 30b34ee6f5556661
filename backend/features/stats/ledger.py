"""
Stats ledger: per-user counters plus profile rating.

Callers invoke each counter move exactly once per logical event; the ledger
does not deduplicate. Counters floor at zero (a floor hit is logged); rating
is signed and unfloored so every rating change stays reversible.

Consistency model: effects are applied after the goal document has been
persisted and are never rolled back together with it. apply() attempts every
effect, logs each failure, then raises LedgerWriteError. A goal mutation can
therefore succeed while some of its counter moves did not.
"""

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from backend.core.errors import LedgerWriteError
from backend.core.logging import log_event
from backend.features.stats.store import ProfileStore, UserStatsStore
from backend.models.stats import LedgerEffect, StatCounter, StatsView, UserStats


def reset_if_stale(stats: UserStats, now: datetime) -> Optional[dict]:
    """
    Monthly counter reset, lazily on first touch of a new calendar month.

    Returns the patch to persist, or None when the record is current.
    """
    last = stats.last_month_reset
    if (now.year, now.month) > (last.year, last.month):
        return {
            "goals_created_this_month": 0,
            "last_month_reset": date(now.year, now.month, 1).isoformat(),
        }
    return None


class StatsLedger:
    def __init__(self, stats_store: Optional[UserStatsStore] = None, profile_store: Optional[ProfileStore] = None):
        self.stats_store = stats_store or UserStatsStore()
        self.profile_store = profile_store or ProfileStore()

    # Record lifecycle -------------------------------------------------
    def ensure_exists(self, user_id: str, now: Optional[datetime] = None) -> UserStats:
        return self.stats_store.ensure_exists(user_id, now=now)

    def reset_if_new_month(self, user_id: str, now: Optional[datetime] = None) -> UserStats:
        moment = now or datetime.now(timezone.utc)
        stats = self.ensure_exists(user_id, now=moment)
        patch = reset_if_stale(stats, moment)
        if patch is None:
            return stats
        return self.stats_store.update_fields(user_id, patch)

    # Chokepoint -------------------------------------------------------
    def apply(self, effects: Iterable[LedgerEffect], *, now: Optional[datetime] = None) -> None:
        failures: List[Exception] = []
        for effect in effects:
            try:
                self._apply_one(effect, now)
            except Exception as exc:
                failures.append(exc)
                log_event(
                    "error",
                    "ledger.effect_failed",
                    user_id=effect.user_id,
                    event_type=effect.counter.value,
                    error_code=LedgerWriteError.code,
                    extra={"delta": effect.delta, "reason": exc},
                )
        if failures:
            raise LedgerWriteError(
                f"{len(failures)} stats update(s) failed after the goal was saved"
            ) from failures[0]

    def _apply_one(self, effect: LedgerEffect, now: Optional[datetime]) -> None:
        if effect.counter == StatCounter.RATING:
            self.profile_store.adjust_rating(effect.user_id, effect.delta)
            return

        if effect.counter == StatCounter.GOALS_CREATED_THIS_MONTH:
            stats = self.reset_if_new_month(effect.user_id, now=now)
        else:
            stats = self.ensure_exists(effect.user_id, now=now)

        field = effect.counter.value
        current = getattr(stats, field)
        updated = current + effect.delta
        if updated < 0:
            log_event(
                "warning",
                "ledger.floor_hit",
                user_id=effect.user_id,
                event_type=field,
                extra={"current": current, "delta": effect.delta},
            )
            updated = 0
        self.stats_store.update_fields(effect.user_id, {field: updated})

    # Named operations -------------------------------------------------
    def _move(self, user_id: str, counter: StatCounter, delta: int, now: Optional[datetime] = None) -> None:
        self.apply([LedgerEffect(user_id=user_id, counter=counter, delta=delta)], now=now)

    def increment_goals_created_this_month(self, user_id: str, now: Optional[datetime] = None) -> None:
        self._move(user_id, StatCounter.GOALS_CREATED_THIS_MONTH, 1, now)

    def increment_active_goals(self, user_id: str) -> None:
        self._move(user_id, StatCounter.ACTIVE_GOALS_NOW, 1)

    def decrement_active_goals(self, user_id: str) -> None:
        self._move(user_id, StatCounter.ACTIVE_GOALS_NOW, -1)

    def increment_completed_goals(self, user_id: str) -> None:
        self._move(user_id, StatCounter.COMPLETED_GOALS, 1)

    def increment_closed_tasks(self, user_id: str) -> None:
        self._move(user_id, StatCounter.CLOSED_TASKS, 1)

    def decrement_closed_tasks(self, user_id: str) -> None:
        self._move(user_id, StatCounter.CLOSED_TASKS, -1)

    def increment_blog_posts(self, user_id: str, amount: int = 1) -> None:
        self._move(user_id, StatCounter.BLOG_POSTS, amount)

    def increment_rating(self, user_id: str, amount: int) -> None:
        self._move(user_id, StatCounter.RATING, amount)

    def decrement_rating(self, user_id: str, amount: int) -> None:
        self._move(user_id, StatCounter.RATING, -amount)

    # Read side --------------------------------------------------------
    def get_stats(self, user_id: str, now: Optional[datetime] = None) -> StatsView:
        stats = self.reset_if_new_month(user_id, now=now)
        profile = self.profile_store.get(user_id)
        return StatsView(
            goals_created_this_month=stats.goals_created_this_month,
            active_goals_now=stats.active_goals_now,
            completed_goals=stats.completed_goals,
            closed_tasks=stats.closed_tasks,
            blog_posts=stats.blog_posts,
            rating=profile.rating if profile else 0,
        )


# Singleton ledger used by services and routes
stats_ledger = StatsLedger()
