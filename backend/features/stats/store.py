"""
backend/features/stats/store.py

UserStats and Profile persistence on top of the document store.
ProfileStore is the ProfileLookup collaborator: it resolves
user_id -> {rating, display_name, avatar} and owns rating mutation.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from backend.core.errors import ConflictError
from backend.features.storage.document_store import get_store
from backend.models.stats import Profile, ProfileSummary, UserStats


class UserStatsStore:
    COLLECTION = "user_stats"

    def __init__(self, store=None):
        self._store = store

    @property
    def documents(self):
        return self._store or get_store()

    def get(self, user_id: str) -> Optional[UserStats]:
        doc = self.documents.find(self.COLLECTION, user_id)
        return UserStats.model_validate(doc) if doc else None

    def ensure_exists(self, user_id: str, now: Optional[datetime] = None) -> UserStats:
        existing = self.get(user_id)
        if existing:
            return existing

        moment = now or datetime.now(timezone.utc)
        stats = UserStats(user_id=user_id, last_month_reset=moment.date())
        try:
            self.documents.insert(self.COLLECTION, {"id": user_id, **stats.model_dump(mode="json")}, owner_id=user_id)
        except ConflictError:
            # Lost a creation race; the other writer's zeroed record is equivalent
            return self.get(user_id)
        return stats

    def update_fields(self, user_id: str, patch: dict) -> Optional[UserStats]:
        doc = self.documents.update_fields(self.COLLECTION, user_id, patch)
        return UserStats.model_validate(doc) if doc else None


class ProfileStore:
    COLLECTION = "profiles"

    def __init__(self, store=None):
        self._store = store

    @property
    def documents(self):
        return self._store or get_store()

    def get(self, user_id: str) -> Optional[Profile]:
        doc = self.documents.find(self.COLLECTION, user_id)
        return Profile.model_validate(doc) if doc else None

    def get_or_create(self, user_id: str, display_name: Optional[str] = None, now: Optional[datetime] = None) -> Profile:
        existing = self.get(user_id)
        if existing:
            return existing

        profile = Profile(
            user_id=user_id,
            display_name=Profile.normalized_display_name(user_id, display_name),
            created_at=now or datetime.now(timezone.utc),
        )
        try:
            self.documents.insert(self.COLLECTION, {"id": user_id, **profile.model_dump(mode="json")}, owner_id=user_id)
        except ConflictError:
            return self.get(user_id)
        return profile

    def update(self, user_id: str, *, display_name: Optional[str] = None, avatar: Optional[str] = None) -> Profile:
        self.get_or_create(user_id)
        patch = {}
        if display_name is not None:
            patch["display_name"] = Profile.normalized_display_name(user_id, display_name)
        if avatar is not None:
            patch["avatar"] = avatar
        doc = self.documents.update_fields(self.COLLECTION, user_id, patch)
        return Profile.model_validate(doc)

    def adjust_rating(self, user_id: str, delta: int) -> Profile:
        profile = self.get_or_create(user_id)
        doc = self.documents.update_fields(self.COLLECTION, user_id, {"rating": profile.rating + delta})
        return Profile.model_validate(doc)

    def search(self, query: str, limit: int, exclude: Iterable[str] = ()) -> List[ProfileSummary]:
        """Case-insensitive display-name match, best rated first."""
        needle = query.strip().lower()
        excluded = set(exclude)

        def matches(doc: dict) -> bool:
            return doc["id"] not in excluded and needle in doc["display_name"].lower()

        docs = self.documents.find_many(
            self.COLLECTION,
            matches,
            sort_key=lambda d: (-d.get("rating", 0), d["display_name"].lower()),
            limit=limit,
        )
        return [
            ProfileSummary(
                user_id=doc["user_id"],
                display_name=doc["display_name"],
                avatar=doc.get("avatar"),
                rating=doc.get("rating", 0),
            )
            for doc in docs
        ]
