from typing import List, Optional

from backend.features.storage.document_store import get_store, timestamp_key
from backend.models.progress_entry import Comment, ProgressEntry


class ProgressEntryStore:
    COLLECTION = "progress_entries"

    def __init__(self, store=None):
        self._store = store

    @property
    def documents(self):
        return self._store or get_store()

    def insert(self, entry: ProgressEntry) -> ProgressEntry:
        self.documents.insert(self.COLLECTION, entry.model_dump(mode="json"), owner_id=entry.user_id)
        return entry

    def find(self, entry_id: str) -> Optional[ProgressEntry]:
        doc = self.documents.find(self.COLLECTION, entry_id)
        return ProgressEntry.model_validate(doc) if doc else None

    def find_for_goal(self, goal_id: str, skip: int = 0, limit: Optional[int] = None) -> List[ProgressEntry]:
        docs = self.documents.find_many(
            self.COLLECTION,
            lambda doc: doc["goal_id"] == goal_id,
            sort_key=timestamp_key(),
            descending=True,
            skip=skip,
            limit=limit,
        )
        return [ProgressEntry.model_validate(doc) for doc in docs]

    def save(self, entry: ProgressEntry) -> ProgressEntry:
        self.documents.replace(self.COLLECTION, entry.id, entry.model_dump(mode="json"))
        return entry

    def delete(self, entry_id: str) -> bool:
        return self.documents.delete(self.COLLECTION, entry_id)


class CommentStore:
    COLLECTION = "comments"

    def __init__(self, store=None):
        self._store = store

    @property
    def documents(self):
        return self._store or get_store()

    def insert(self, comment: Comment) -> Comment:
        self.documents.insert(self.COLLECTION, comment.model_dump(mode="json"), owner_id=comment.user_id)
        return comment

    def find(self, comment_id: str) -> Optional[Comment]:
        doc = self.documents.find(self.COLLECTION, comment_id)
        return Comment.model_validate(doc) if doc else None

    def find_for_entry(self, entry_id: str, skip: int = 0, limit: Optional[int] = None) -> List[Comment]:
        docs = self.documents.find_many(
            self.COLLECTION,
            lambda doc: doc["progress_entry_id"] == entry_id,
            sort_key=timestamp_key(),
            skip=skip,
            limit=limit,
        )
        return [Comment.model_validate(doc) for doc in docs]

    def count_for_entry(self, entry_id: str) -> int:
        return self.documents.count(self.COLLECTION, lambda doc: doc["progress_entry_id"] == entry_id)

    def save(self, comment: Comment) -> Comment:
        self.documents.replace(self.COLLECTION, comment.id, comment.model_dump(mode="json"))
        return comment

    def delete(self, comment_id: str) -> bool:
        return self.documents.delete(self.COLLECTION, comment_id)

    def delete_for_entry(self, entry_id: str) -> int:
        return self.documents.delete_many(self.COLLECTION, lambda doc: doc["progress_entry_id"] == entry_id)
