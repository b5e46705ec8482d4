"""
Document-store abstraction for Firestore and an in-memory test implementation.

Collections are addressed by slash-separated paths, so subcollections look
like ``users/{uid}/favorites``.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from roomielab.errors import ApiError, ErrorKind

# (field, operator, value); operators follow Firestore's names.
Filter = tuple[str, str, Any]

SUPPORTED_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in", "array_contains")


@dataclass
class Document:
    id: str
    data: dict

    def as_dict(self) -> dict:
        return {"id": self.id, **self.data}


class DbClient(Protocol):
    """Interface for document database access."""

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[Document]:
        ...

    def add(self, collection: str, data: dict) -> str:
        ...

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        ...

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        ...

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        ...


def _missing(collection: str, doc_id: str) -> ApiError:
    return ApiError(ErrorKind.NOT_FOUND, f"Document {collection}/{doc_id} not found")


def _matches(data: dict, flt: Filter) -> bool:
    field_name, op, expected = flt
    if field_name not in data:
        return False
    actual = data[field_name]
    try:
        if op == "==":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
        if op == "in":
            return actual in expected
        if op == "array_contains":
            return isinstance(actual, list) and expected in actual
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator: {op}")


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}

    def _collection(self, collection: str) -> dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        data = self._collection(collection).get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, data=copy.deepcopy(data))

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[Document]:
        docs = []
        for doc_id in doc_ids:
            doc = self.get(collection, doc_id)
            if doc:
                docs.append(doc)
        return docs

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        docs = self._collection(collection)
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(data))
        else:
            docs[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise _missing(collection, doc_id)
        docs[doc_id].update(copy.deepcopy(data))

    def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        filters = list(filters)
        for _, op, _ in filters:
            if op not in SUPPORTED_OPERATORS:
                raise ValueError(f"Unsupported filter operator: {op}")
        docs = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
            if all(_matches(data, flt) for flt in filters)
        ]
        if order_by:
            # Firestore omits documents that lack the ordering field.
            docs = [doc for doc in docs if order_by in doc.data]
            docs.sort(key=lambda doc: doc.data[order_by], reverse=descending)
        if limit is not None:
            docs = docs[:limit]
        return docs

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        return len(self.query(collection, filters))


class FirestoreDbClient:
    """Firestore-backed implementation using the google-cloud-firestore client."""

    def __init__(self, client: firestore.Client):
        self.client = client

    def _ref(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        snapshot = self._ref(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return Document(id=snapshot.id, data=snapshot.to_dict() or {})

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[Document]:
        refs = [self._ref(collection, doc_id) for doc_id in doc_ids]
        if not refs:
            return []
        by_id = {
            snapshot.id: Document(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in self.client.get_all(refs)
            if snapshot.exists
        }
        # get_all does not preserve request order.
        return [by_id[ref.id] for ref in refs if ref.id in by_id]

    def add(self, collection: str, data: dict) -> str:
        _, ref = self.client.collection(collection).add(data)
        return ref.id

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        self._ref(collection, doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        try:
            self._ref(collection, doc_id).update(data)
        except google_exceptions.NotFound as exc:
            raise _missing(collection, doc_id) from exc

    def delete(self, collection: str, doc_id: str) -> None:
        self._ref(collection, doc_id).delete()

    def _build_query(self, collection: str, filters: Iterable[Filter]):
        query = self.client.collection(collection)
        for field_name, op, value in filters:
            if op not in SUPPORTED_OPERATORS:
                raise ValueError(f"Unsupported filter operator: {op}")
            query = query.where(filter=FieldFilter(field_name, op, value))
        return query

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        query = self._build_query(collection, filters)
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [
            Document(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        results = self._build_query(collection, filters).count().get()
        return int(results[0][0].value) if results else 0
