from typing import List, Optional

from backend.features.storage.document_store import get_store, timestamp_key
from backend.models.notification import Notification


class NotificationStore:
    COLLECTION = "notifications"

    def __init__(self, store=None):
        self._store = store

    @property
    def documents(self):
        return self._store or get_store()

    def insert(self, notification: Notification) -> Notification:
        self.documents.insert(self.COLLECTION, notification.model_dump(mode="json"), owner_id=notification.user_id)
        return notification

    def find(self, notification_id: str) -> Optional[Notification]:
        doc = self.documents.find(self.COLLECTION, notification_id)
        return Notification.model_validate(doc) if doc else None

    def find_for_user(self, user_id: str, predicate=None, skip: int = 0, limit: Optional[int] = None) -> List[Notification]:
        docs = self.documents.find_many(
            self.COLLECTION,
            predicate,
            owner_id=user_id,
            sort_key=timestamp_key(),
            descending=True,
            skip=skip,
            limit=limit,
        )
        return [Notification.model_validate(doc) for doc in docs]

    def count_for_user(self, user_id: str, predicate=None) -> int:
        return self.documents.count(self.COLLECTION, predicate, owner_id=user_id)

    def update_fields(self, notification_id: str, patch: dict) -> Optional[Notification]:
        doc = self.documents.update_fields(self.COLLECTION, notification_id, patch)
        return Notification.model_validate(doc) if doc else None
