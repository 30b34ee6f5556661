"""
backend/features/storage/document_store_sql.py

SQLAlchemy-backed document store over the ``documents`` table.

Maintains the same interface as InMemoryDocumentStore. Predicates and sort
keys run in Python after the (collection, owner_id) narrowing query.
"""

from typing import List, Optional

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from backend.core.database import documents, get_db_session
from backend.core.errors import ConflictError
from backend.features.storage.document_store import Document, Predicate, SortKey, select_page


class SqlDocumentStore:
    """PostgreSQL/SQLite document store."""

    def find(self, collection: str, doc_id: str) -> Optional[Document]:
        with get_db_session() as session:
            row = session.execute(
                select(documents.c.body).where(
                    and_(documents.c.collection == collection, documents.c.id == doc_id)
                )
            ).first()
            return dict(row.body) if row else None

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
        query = select(documents.c.body).where(documents.c.collection == collection)
        if owner_id is not None:
            query = query.where(documents.c.owner_id == owner_id)
        query = query.order_by(documents.c.created_at, documents.c.id)

        with get_db_session() as session:
            rows = session.execute(query).all()

        docs = [dict(row.body) for row in rows]
        return select_page(docs, predicate, sort_key, descending, skip, limit)

    def count(self, collection: str, predicate: Optional[Predicate] = None, *, owner_id: Optional[str] = None) -> int:
        return len(self.find_many(collection, predicate, owner_id=owner_id))

    def insert(self, collection: str, doc: Document, *, owner_id: Optional[str] = None) -> Document:
        try:
            with get_db_session() as session:
                session.execute(
                    insert(documents).values(
                        collection=collection,
                        id=doc["id"],
                        owner_id=owner_id,
                        body=doc,
                    )
                )
        except IntegrityError:
            raise ConflictError(f"Document {collection}/{doc['id']} already exists")
        return dict(doc)

    def update_fields(self, collection: str, doc_id: str, patch: Document) -> Optional[Document]:
        with get_db_session() as session:
            row = session.execute(
                select(documents.c.body).where(
                    and_(documents.c.collection == collection, documents.c.id == doc_id)
                )
            ).first()
            if not row:
                return None
            body = dict(row.body)
            body.update(patch)
            session.execute(
                update(documents)
                .where(and_(documents.c.collection == collection, documents.c.id == doc_id))
                .values(body=body)
            )
            return body

    def replace(self, collection: str, doc_id: str, doc: Document) -> bool:
        with get_db_session() as session:
            result = session.execute(
                update(documents)
                .where(and_(documents.c.collection == collection, documents.c.id == doc_id))
                .values(body=doc)
            )
            return result.rowcount > 0

    def delete(self, collection: str, doc_id: str) -> bool:
        with get_db_session() as session:
            result = session.execute(
                delete(documents).where(
                    and_(documents.c.collection == collection, documents.c.id == doc_id)
                )
            )
            return result.rowcount > 0

    def delete_many(self, collection: str, predicate: Predicate) -> int:
        doomed = [doc["id"] for doc in self.find_many(collection, predicate)]
        for doc_id in doomed:
            self.delete(collection, doc_id)
        return len(doomed)

    def clear(self) -> None:
        with get_db_session() as session:
            session.execute(delete(documents))
