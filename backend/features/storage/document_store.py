"""
backend/features/storage/document_store.py

Document store used by every aggregate (goals, stats, profiles,
notifications, progress entries). In-memory implementation by default;
PostgreSQL/SQLite via document_store_sql when DATABASE_URL is configured.

Semantics are find-then-conditionally-update with no multi-document
transactions: each call touches exactly one document.
"""

import copy
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from backend.core.errors import ConflictError

Document = Dict[str, Any]
Predicate = Callable[[Document], bool]
SortKey = Callable[[Document], Any]

logger = logging.getLogger("goalkeeper")


def timestamp_key(field: str = "created_at") -> SortKey:
    """Sort key parsing an ISO-8601 field (stored strings differ in precision)."""

    def key(doc: Document) -> datetime:
        parsed = datetime.fromisoformat(doc[field].replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    return key


def select_page(
    docs: List[Document],
    predicate: Optional[Predicate] = None,
    sort_key: Optional[SortKey] = None,
    descending: bool = False,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[Document]:
    """Filter, sort and slice a list of documents (shared by both backends)."""
    matched = [doc for doc in docs if predicate is None or predicate(doc)]
    if sort_key is not None:
        matched = sorted(matched, key=sort_key, reverse=descending)
    end = None if limit is None else skip + limit
    return matched[skip:end]


class InMemoryDocumentStore:
    """
    Dict-backed document store.

    Reads and writes deep-copy documents so callers never share state
    with the store.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._owners: Dict[str, Dict[str, Optional[str]]] = {}

    def _collection(self, collection: str) -> Dict[str, Document]:
        return self._collections.setdefault(collection, {})

    def find(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def find_many(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        *,
        owner_id: Optional[str] = None,
        sort_key: Optional[SortKey] = None,
        descending: bool = False,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        owners = self._owners.get(collection, {})
        docs = [
            doc
            for doc_id, doc in self._collection(collection).items()
            if owner_id is None or owners.get(doc_id) == owner_id
        ]
        page = select_page(docs, predicate, sort_key, descending, skip, limit)
        return [copy.deepcopy(doc) for doc in page]

    def count(self, collection: str, predicate: Optional[Predicate] = None, *, owner_id: Optional[str] = None) -> int:
        return len(self.find_many(collection, predicate, owner_id=owner_id))

    def insert(self, collection: str, doc: Document, *, owner_id: Optional[str] = None) -> Document:
        doc_id = doc["id"]
        docs = self._collection(collection)
        if doc_id in docs:
            raise ConflictError(f"Document {collection}/{doc_id} already exists")
        docs[doc_id] = copy.deepcopy(doc)
        self._owners.setdefault(collection, {})[doc_id] = owner_id
        return copy.deepcopy(doc)

    def update_fields(self, collection: str, doc_id: str, patch: Document) -> Optional[Document]:
        docs = self._collection(collection)
        if doc_id not in docs:
            return None
        docs[doc_id].update(copy.deepcopy(patch))
        return copy.deepcopy(docs[doc_id])

    def replace(self, collection: str, doc_id: str, doc: Document) -> bool:
        docs = self._collection(collection)
        if doc_id not in docs:
            return False
        docs[doc_id] = copy.deepcopy(doc)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        docs = self._collection(collection)
        if doc_id not in docs:
            return False
        del docs[doc_id]
        self._owners.get(collection, {}).pop(doc_id, None)
        return True

    def delete_many(self, collection: str, predicate: Predicate) -> int:
        doomed = [doc_id for doc_id, doc in self._collection(collection).items() if predicate(doc)]
        for doc_id in doomed:
            self.delete(collection, doc_id)
        return len(doomed)

    def clear(self) -> None:
        self._collections.clear()
        self._owners.clear()


_store_instance = None


def get_document_store():
    """
    Pick the document store implementation.

    - SQL store when DATABASE_URL (or TEST_DATABASE_URL) is set and reachable
    - In-memory otherwise
    """
    database_url = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL")

    if database_url:
        from backend.core.database import check_connection, create_all_tables
        from backend.features.storage.document_store_sql import SqlDocumentStore

        if check_connection():
            create_all_tables()
            return SqlDocumentStore()
        logger.warning("DATABASE_URL set but database unreachable; using in-memory document store")

    return InMemoryDocumentStore()


def get_store():
    """Singleton document store shared by all typed stores."""
    global _store_instance
    if _store_instance is None:
        _store_instance = get_document_store()
    return _store_instance


def reset_store():
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_store() call.
    """
    global _store_instance
    _store_instance = None
