"""
backend/tests/test_sql_store.py
SQL document store against in-process SQLite.
"""

from datetime import datetime, timezone

import pytest

from backend.core.errors import ConflictError
from backend.features.goals.service import goal_service
from backend.features.stats.ledger import stats_ledger
from backend.features.storage.document_store_sql import SqlDocumentStore
from backend.models.goal import CreateGoalRequest, StepInput

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestSqlDocumentStore:
    def test_selected_when_database_configured(self, sqlite_store):
        assert isinstance(sqlite_store, SqlDocumentStore)

    def test_crud(self, sqlite_store):
        sqlite_store.insert("things", {"id": "t1", "name": "one"}, owner_id="alice")

        assert sqlite_store.find("things", "t1") == {"id": "t1", "name": "one"}
        assert sqlite_store.update_fields("things", "t1", {"name": "uno"})["name"] == "uno"
        assert sqlite_store.replace("things", "t1", {"id": "t1", "name": "eins"}) is True
        assert sqlite_store.find("things", "t1")["name"] == "eins"
        assert sqlite_store.delete("things", "t1") is True
        assert sqlite_store.find("things", "t1") is None
        assert sqlite_store.update_fields("things", "t1", {"name": "x"}) is None

    def test_duplicate_insert_conflicts(self, sqlite_store):
        sqlite_store.insert("things", {"id": "t1"})
        with pytest.raises(ConflictError):
            sqlite_store.insert("things", {"id": "t1"})

    def test_find_many_by_owner(self, sqlite_store):
        for i, owner in enumerate(["alice", "bob", "alice"]):
            sqlite_store.insert("things", {"id": f"t{i}", "rank": i}, owner_id=owner)

        docs = sqlite_store.find_many("things", owner_id="alice", sort_key=lambda d: d["rank"], descending=True)
        assert [d["id"] for d in docs] == ["t2", "t0"]
        assert sqlite_store.count("things", lambda d: d["rank"] > 0) == 2


class TestGoalFlowOnSql:
    def test_step_toggle_persists(self, sqlite_store):
        goal = goal_service.create_goal(
            "alice",
            CreateGoalRequest(
                goal_name="Garden",
                category="home",
                start_date=NOW,
                steps=[StepInput(text="Dig"), StepInput(text="Plant")],
            ),
            now=NOW,
        )
        goal_service.mark_step(goal.id, "alice", goal.steps[0].id, True, now=NOW)

        stored = goal_service.get_goal(goal.id)
        assert stored.progress == 50
        assert stored.steps[0].is_completed is True

        stats = stats_ledger.get_stats("alice", now=NOW)
        assert stats.active_goals_now == 1
        assert stats.closed_tasks == 1
        assert stats.rating == 10
