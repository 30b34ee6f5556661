"""
backend/features/goals/store.py
GoalStore: goal documents in the "goals" collection, parsed into the
SoloGoal | GroupGoal union at this boundary.
"""

from datetime import datetime, timezone
from typing import List, Optional

from backend.core.errors import NotFoundError
from backend.features.storage.document_store import Predicate, get_store, timestamp_key
from backend.models.goal import Goal, goal_from_document


class GoalStore:
    COLLECTION = "goals"

    def __init__(self, store=None):
        self._store = store

    @property
    def documents(self):
        return self._store or get_store()

    def find(self, goal_id: str) -> Optional[Goal]:
        doc = self.documents.find(self.COLLECTION, goal_id)
        return goal_from_document(doc) if doc else None

    def get(self, goal_id: str) -> Goal:
        goal = self.find(goal_id)
        if goal is None:
            raise NotFoundError("Goal not found")
        return goal

    def find_many(
        self,
        predicate: Optional[Predicate] = None,
        *,
        owner_id: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Goal]:
        """Matching goals, newest first."""
        docs = self.documents.find_many(
            self.COLLECTION,
            predicate,
            owner_id=owner_id,
            sort_key=timestamp_key(),
            descending=True,
            skip=skip,
            limit=limit,
        )
        return [goal_from_document(doc) for doc in docs]

    def count(self, predicate: Optional[Predicate] = None, *, owner_id: Optional[str] = None) -> int:
        return self.documents.count(self.COLLECTION, predicate, owner_id=owner_id)

    def insert(self, goal: Goal) -> Goal:
        self.documents.insert(self.COLLECTION, goal.to_document(), owner_id=goal.owner_id)
        return goal

    def save(self, goal: Goal, now: Optional[datetime] = None) -> Goal:
        """Whole-aggregate write; NotFound if the goal was deleted meanwhile."""
        goal.updated_at = now or datetime.now(timezone.utc)
        if not self.documents.replace(self.COLLECTION, goal.id, goal.to_document()):
            raise NotFoundError("Goal not found")
        return goal

    def delete(self, goal_id: str) -> bool:
        return self.documents.delete(self.COLLECTION, goal_id)
