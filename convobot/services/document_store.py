"""Document store abstraction used by the conversation store and bot registry.

Two backends share one contract:

* ``FirestoreDocumentStore`` - Google Cloud Firestore (production).
* ``InMemoryDocumentStore`` - process-local dictionaries (tests, local dev).

Both raise ``google.api_core.exceptions.AlreadyExists`` from :meth:`create`
when the document is already present and ``NotFound`` from :meth:`update`
when it is missing, so callers classify failures the same way regardless of
backend.
"""

import copy
import logging
import operator
import threading
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud import firestore

logger = logging.getLogger(__name__)

Filter = Tuple[str, str, Any]
Document = Tuple[str, Dict[str, Any]]

_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def new_document_id() -> str:
    return uuid.uuid4().hex


class DocumentStore(ABC):
    """Collections of JSON-like documents keyed by string ids."""

    @abstractmethod
    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create a document; raise ``AlreadyExists`` if the id is taken."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or overwrite a document."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Dict[str, Any],
        increments: Optional[Dict[str, int]] = None,
    ) -> None:
        """Merge ``fields`` and add ``increments`` atomically; raise ``NotFound`` if absent."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Return ``(doc_id, data)`` pairs matching every filter."""


# --------------------------------------------------------------------- #
# Firestore
# --------------------------------------------------------------------- #
class FirestoreDocumentStore(DocumentStore):
    """Repository for documents in Google Cloud Firestore."""

    def __init__(self, project_id: Optional[str] = None, db_name: str = "(default)", client=None) -> None:
        self.db = client or firestore.Client(project=project_id, database=db_name)
        logger.info("FirestoreDocumentStore initialized for project '%s', database '%s'", project_id, db_name)

    def _doc(self, collection: str, doc_id: str):
        return self.db.collection(collection).document(doc_id)

    def create(self, collection, doc_id, data):
        # DocumentReference.create fails with AlreadyExists (409) instead of overwriting
        self._doc(collection, doc_id).create(data)

    def set(self, collection, doc_id, data):
        self._doc(collection, doc_id).set(data)

    def get(self, collection, doc_id):
        snapshot = self._doc(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def update(self, collection, doc_id, fields, increments=None):
        payload = dict(fields)
        for name, amount in (increments or {}).items():
            payload[name] = firestore.Increment(amount)
        if payload:
            self._doc(collection, doc_id).update(payload)

    def delete(self, collection, doc_id):
        self._doc(collection, doc_id).delete()

    def query(self, collection, filters=(), order_by=None, descending=False, limit=None):
        q = self.db.collection(collection)
        for field, op, value in filters:
            q = q.where(field, op, value)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            q = q.order_by(order_by, direction=direction)
        if limit:
            q = q.limit(limit)
        return [(doc.id, doc.to_dict()) for doc in q.stream()]


# --------------------------------------------------------------------- #
# In-memory
# --------------------------------------------------------------------- #
class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dictionary-backed store with Firestore-like semantics."""

    def __init__(self) -> None:
        self._collections: Dict[str, "OrderedDict[str, Dict[str, Any]]"] = {}
        self._lock = threading.Lock()

    def _coll(self, collection: str) -> "OrderedDict[str, Dict[str, Any]]":
        return self._collections.setdefault(collection, OrderedDict())

    def create(self, collection, doc_id, data):
        with self._lock:
            coll = self._coll(collection)
            if doc_id in coll:
                raise AlreadyExists(f"Document {collection}/{doc_id} already exists")
            coll[doc_id] = copy.deepcopy(data)

    def set(self, collection, doc_id, data):
        with self._lock:
            self._coll(collection)[doc_id] = copy.deepcopy(data)

    def get(self, collection, doc_id):
        with self._lock:
            data = self._coll(collection).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    def update(self, collection, doc_id, fields, increments=None):
        with self._lock:
            coll = self._coll(collection)
            if doc_id not in coll:
                raise NotFound(f"Document {collection}/{doc_id} not found")
            doc = coll[doc_id]
            doc.update(copy.deepcopy(fields))
            for name, amount in (increments or {}).items():
                doc[name] = (doc.get(name) or 0) + amount

    def delete(self, collection, doc_id):
        with self._lock:
            self._coll(collection).pop(doc_id, None)

    def query(self, collection, filters=(), order_by=None, descending=False, limit=None):
        with self._lock:
            items = [(doc_id, copy.deepcopy(data)) for doc_id, data in self._coll(collection).items()]

        def matches(data: Dict[str, Any]) -> bool:
            for field, op, value in filters:
                if field not in data:
                    return False
                try:
                    if not _OPERATORS[op](data[field], value):
                        return False
                except TypeError:
                    return False
            return True

        results = [(doc_id, data) for doc_id, data in items if matches(data)]
        if order_by:
            # Firestore excludes documents missing the order_by field
            results = [r for r in results if r[1].get(order_by) is not None]
            results.sort(key=lambda r: r[1][order_by], reverse=descending)
        if limit:
            results = results[:limit]
        return results

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._coll(collection))
