"""
backend/tests/test_progress_entries.py
Progress entries, likes and comments.
"""

from datetime import datetime, timedelta, timezone

import pytest

from backend.core.errors import NotFoundError
from backend.features.goals.group_service import group_goal_service
from backend.features.goals.service import goal_service
from backend.features.progress_entries.service import day_number, progress_entry_service
from backend.features.stats.ledger import stats_ledger
from backend.models.goal import CreateGoalRequest, CreateGroupGoalRequest, InvitationStatus

START = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _goal(owner="alice"):
    return goal_service.create_goal(
        owner, CreateGoalRequest(goal_name="Write a book", category="craft", start_date=START), now=NOW
    )


class TestDayNumber:
    def test_first_day_is_one(self):
        assert day_number(START, START) == 1
        assert day_number(START, START + timedelta(hours=23)) == 1

    def test_counts_whole_days(self):
        assert day_number(START, NOW) == 10

    def test_before_start_is_clamped(self):
        assert day_number(START, START - timedelta(days=3)) == 1


class TestEntries:
    def test_create_counts_blog_post(self):
        goal = _goal()
        entry = progress_entry_service.create_entry("alice", goal.id, "Chapter one done", now=NOW)

        assert entry.day == 10
        assert entry.comment_count == 0
        assert stats_ledger.get_stats("alice", now=NOW).blog_posts == 1

    def test_only_owner_posts_on_solo_goal(self):
        goal = _goal()
        with pytest.raises(NotFoundError):
            progress_entry_service.create_entry("mallory", goal.id, "hi", now=NOW)
        with pytest.raises(NotFoundError):
            progress_entry_service.create_entry("alice", "missing", "hi", now=NOW)

    def test_accepted_participant_posts_on_group_goal(self):
        goal = group_goal_service.create_group_goal(
            "alice",
            CreateGroupGoalRequest(goal_name="Team", category="work", start_date=START, participant_ids=["bob"]),
            now=NOW,
        )
        with pytest.raises(NotFoundError):
            progress_entry_service.create_entry("bob", goal.id, "hi", now=NOW)

        group_goal_service.respond_to_invitation(goal.id, "bob", InvitationStatus.ACCEPTED, now=NOW)
        entry = progress_entry_service.create_entry("bob", goal.id, "hi", now=NOW)
        assert entry.user_id == "bob"

    def test_list_newest_first_with_counts(self):
        goal = _goal()
        first = progress_entry_service.create_entry("alice", goal.id, "one", now=NOW)
        second = progress_entry_service.create_entry("alice", goal.id, "two", now=NOW + timedelta(hours=1))
        progress_entry_service.create_comment("bob", first.id, "nice", now=NOW)
        progress_entry_service.toggle_like("bob", first.id)

        page = progress_entry_service.list_entries(goal.id)
        assert [e.id for e in page.items] == [second.id, first.id]
        assert page.items[1].comment_count == 1
        assert page.items[1].likes_count == 1

    def test_update_by_author_only(self):
        goal = _goal()
        entry = progress_entry_service.create_entry("alice", goal.id, "draft", now=NOW)

        with pytest.raises(NotFoundError):
            progress_entry_service.update_entry("bob", entry.id, "hijack")
        updated = progress_entry_service.update_entry("alice", entry.id, "final")
        assert updated.content == "final"
        assert updated.is_edited is True

    def test_delete_removes_comments(self):
        goal = _goal()
        entry = progress_entry_service.create_entry("alice", goal.id, "post", now=NOW)
        comment = progress_entry_service.create_comment("bob", entry.id, "first", now=NOW)

        with pytest.raises(NotFoundError):
            progress_entry_service.delete_entry("bob", entry.id)
        progress_entry_service.delete_entry("alice", entry.id)

        assert progress_entry_service.list_entries(goal.id).items == []
        assert progress_entry_service.comments.find(comment.id) is None

    def test_like_toggles(self):
        goal = _goal()
        entry = progress_entry_service.create_entry("alice", goal.id, "post", now=NOW)

        assert progress_entry_service.toggle_like("bob", entry.id).likes == ["bob"]
        assert progress_entry_service.toggle_like("bob", entry.id).likes == []


class TestComments:
    def test_oldest_first(self):
        goal = _goal()
        entry = progress_entry_service.create_entry("alice", goal.id, "post", now=NOW)
        progress_entry_service.create_comment("bob", entry.id, "first", now=NOW)
        progress_entry_service.create_comment("carol", entry.id, "second", now=NOW + timedelta(minutes=5))

        page = progress_entry_service.list_comments(entry.id)
        assert [c.content for c in page.items] == ["first", "second"]
        assert page.total == 2

    def test_comment_on_missing_entry(self):
        with pytest.raises(NotFoundError):
            progress_entry_service.create_comment("bob", "missing", "hello")

    def test_edit_delete_and_like(self):
        goal = _goal()
        entry = progress_entry_service.create_entry("alice", goal.id, "post", now=NOW)
        comment = progress_entry_service.create_comment("bob", entry.id, "typo", now=NOW)

        with pytest.raises(NotFoundError):
            progress_entry_service.update_comment("alice", comment.id, "nope")
        edited = progress_entry_service.update_comment("bob", comment.id, "fixed")
        assert edited.is_edited is True

        assert progress_entry_service.toggle_comment_like("alice", comment.id).likes == ["alice"]

        progress_entry_service.delete_comment("bob", comment.id)
        assert progress_entry_service.list_comments(entry.id).items == []
