"""
Progress entries: day-numbered posts on a goal, with likes and comments.

Publishing an entry counts as a blog post in the author's stats.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from backend.core.errors import NotFoundError
from backend.core.logging import log_event
from backend.features.goals import effects as goal_effects
from backend.features.goals.permissions import is_contributor
from backend.features.goals.service import check_page
from backend.features.goals.store import GoalStore
from backend.features.progress_entries.store import CommentStore, ProgressEntryStore
from backend.features.stats.ledger import StatsLedger, stats_ledger
from backend.models.progress_entry import Comment, CommentPage, EntryPage, ProgressEntry, ProgressEntryView

PAGE_LIMIT_MAX = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def day_number(start_date: datetime, moment: datetime) -> int:
    """1-based day of the goal on which moment falls."""
    if start_date.tzinfo is None:
        start_date = start_date.replace(tzinfo=timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(1, (moment - start_date).days + 1)


def _toggle(likes: List[str], user_id: str) -> List[str]:
    if user_id in likes:
        return [liker for liker in likes if liker != user_id]
    return likes + [user_id]


class ProgressEntryService:
    def __init__(
        self,
        entries: Optional[ProgressEntryStore] = None,
        comments: Optional[CommentStore] = None,
        goals: Optional[GoalStore] = None,
        ledger: Optional[StatsLedger] = None,
    ):
        self.entries = entries or ProgressEntryStore()
        self.comments = comments or CommentStore()
        self.goals = goals or GoalStore()
        self.ledger = ledger or stats_ledger

    def _view(self, entry: ProgressEntry) -> ProgressEntryView:
        return ProgressEntryView(
            **entry.model_dump(),
            comment_count=self.comments.count_for_entry(entry.id),
            likes_count=len(entry.likes),
        )

    def _own_entry(self, user_id: str, entry_id: str) -> ProgressEntry:
        entry = self.entries.find(entry_id)
        if entry is None or entry.user_id != user_id:
            raise NotFoundError("Progress entry not found")
        return entry

    def _own_comment(self, user_id: str, comment_id: str) -> Comment:
        comment = self.comments.find(comment_id)
        if comment is None or comment.user_id != user_id:
            raise NotFoundError("Comment not found")
        return comment

    # Entries ------------------------------------------------------------
    def create_entry(self, user_id: str, goal_id: str, content: str, *, now: Optional[datetime] = None) -> ProgressEntryView:
        moment = now or _utcnow()
        goal = self.goals.find(goal_id)
        if goal is None or not is_contributor(goal, user_id):
            raise NotFoundError("Goal not found")

        entry = ProgressEntry(
            id=str(uuid.uuid4()),
            goal_id=goal_id,
            user_id=user_id,
            content=content,
            day=day_number(goal.start_date, moment),
            created_at=moment,
            updated_at=moment,
        )
        self.entries.insert(entry)
        log_event("info", "progress_entry.created", user_id=user_id, goal_id=goal_id)
        self.ledger.apply(goal_effects.entry_published(user_id), now=moment)
        return self._view(entry)

    def list_entries(self, goal_id: str, page: int = 1, limit: int = 10) -> EntryPage:
        limit = check_page(page, limit, PAGE_LIMIT_MAX)
        entries = self.entries.find_for_goal(goal_id, skip=(page - 1) * limit, limit=limit)
        return EntryPage(items=[self._view(entry) for entry in entries], page=page, limit=limit)

    def update_entry(self, user_id: str, entry_id: str, content: str, *, now: Optional[datetime] = None) -> ProgressEntryView:
        entry = self._own_entry(user_id, entry_id)
        entry.content = content
        entry.is_edited = True
        entry.updated_at = now or _utcnow()
        return self._view(self.entries.save(entry))

    def delete_entry(self, user_id: str, entry_id: str) -> None:
        self._own_entry(user_id, entry_id)
        removed = self.comments.delete_for_entry(entry_id)
        self.entries.delete(entry_id)
        log_event("info", "progress_entry.deleted", user_id=user_id, extra={"entry_id": entry_id, "comments_removed": removed})

    def toggle_like(self, user_id: str, entry_id: str) -> ProgressEntryView:
        entry = self.entries.find(entry_id)
        if entry is None:
            raise NotFoundError("Progress entry not found")
        entry.likes = _toggle(entry.likes, user_id)
        return self._view(self.entries.save(entry))

    # Comments -----------------------------------------------------------
    def create_comment(self, user_id: str, entry_id: str, content: str, *, now: Optional[datetime] = None) -> Comment:
        moment = now or _utcnow()
        if self.entries.find(entry_id) is None:
            raise NotFoundError("Progress entry not found")
        comment = Comment(
            id=str(uuid.uuid4()),
            progress_entry_id=entry_id,
            user_id=user_id,
            content=content,
            created_at=moment,
            updated_at=moment,
        )
        return self.comments.insert(comment)

    def list_comments(self, entry_id: str, page: int = 1, limit: int = 20) -> CommentPage:
        limit = check_page(page, limit, PAGE_LIMIT_MAX)
        if self.entries.find(entry_id) is None:
            raise NotFoundError("Progress entry not found")
        items = self.comments.find_for_entry(entry_id, skip=(page - 1) * limit, limit=limit)
        return CommentPage(items=items, page=page, limit=limit, total=self.comments.count_for_entry(entry_id))

    def update_comment(self, user_id: str, comment_id: str, content: str, *, now: Optional[datetime] = None) -> Comment:
        comment = self._own_comment(user_id, comment_id)
        comment.content = content
        comment.is_edited = True
        comment.updated_at = now or _utcnow()
        return self.comments.save(comment)

    def delete_comment(self, user_id: str, comment_id: str) -> None:
        self._own_comment(user_id, comment_id)
        self.comments.delete(comment_id)

    def toggle_comment_like(self, user_id: str, comment_id: str) -> Comment:
        comment = self.comments.find(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        comment.likes = _toggle(comment.likes, user_id)
        return self.comments.save(comment)


progress_entry_service = ProgressEntryService()
