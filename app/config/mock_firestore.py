"""
In-memory Firestore stand-in for local development and tests (USE_MOCK_DB=true).

Implements the subset of the Firestore client API Clean City API uses:
collection/document references, set/update/get/delete, where/order_by/limit
queries over dotted field paths, server timestamps and ArrayUnion transforms.
Optionally persists to a JSON file so a dev server keeps data across restarts.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core.exceptions import NotFound

logger = logging.getLogger(__name__)

_MISSING = object()


def _get_path(data: Dict, field_path: str) -> Any:
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _set_path(data: Dict, field_path: str, value: Any) -> None:
    parts = field_path.split(".")
    current = data
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def _resolve_transforms(value: Any, existing: Any = _MISSING) -> Any:
    """Replace SERVER_TIMESTAMP sentinels and apply ArrayUnion against the stored value."""
    if value is firestore.SERVER_TIMESTAMP:
        return datetime.now(timezone.utc)
    if isinstance(value, firestore.ArrayUnion):
        current = list(existing) if isinstance(existing, list) else []
        for item in value.values:
            if item not in current:
                current.append(copy.deepcopy(item))
        return current
    if isinstance(value, dict):
        return {k: _resolve_transforms(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_transforms(v) for v in value]
    return copy.deepcopy(value)


def _matches(value: Any, op_string: str, target: Any) -> bool:
    if value is _MISSING:
        return False
    try:
        if op_string == "==":
            return value == target
        if op_string == "!=":
            return value != target
        if op_string == "<":
            return value < target
        if op_string == "<=":
            return value <= target
        if op_string == ">":
            return value > target
        if op_string == ">=":
            return value >= target
        if op_string == "in":
            return value in target
        if op_string == "not-in":
            return value not in target
        if op_string == "array_contains":
            return isinstance(value, list) and target in value
    except TypeError:
        # Firestore never matches across incomparable types
        return False
    raise ValueError(f"Unsupported operator: {op_string}")


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict]):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data) if data is not None else None

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path: str) -> Any:
        if self._data is None:
            return None
        value = _get_path(self._data, field_path)
        return None if value is _MISSING else copy.deepcopy(value)


class MockDocumentReference:
    def __init__(self, client: "MockFirestore", collection_name: str, doc_id: str):
        self._client = client
        self._collection_name = collection_name
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection_name}/{self.id}"

    def _docs(self) -> Dict[str, Dict]:
        return self._client._store.setdefault(self._collection_name, {})

    def get(self, timeout: Optional[float] = None) -> MockDocumentSnapshot:
        with self._client._lock:
            return MockDocumentSnapshot(self, self._docs().get(self.id))

    def set(self, document_data: Dict, merge: bool = False, timeout: Optional[float] = None) -> None:
        with self._client._lock:
            docs = self._docs()
            if merge and self.id in docs:
                target = docs[self.id]
                for key, value in document_data.items():
                    target[key] = _resolve_transforms(value, target.get(key, _MISSING))
            else:
                docs[self.id] = _resolve_transforms(document_data)
            self._client._persist()

    def update(self, field_updates: Dict, timeout: Optional[float] = None) -> None:
        with self._client._lock:
            docs = self._docs()
            if self.id not in docs:
                raise NotFound(f"No document to update: {self.path}")
            target = docs[self.id]
            for field_path, value in field_updates.items():
                existing = _get_path(target, field_path)
                _set_path(target, field_path, _resolve_transforms(value, existing))
            self._client._persist()


class MockQuery:
    def __init__(
        self,
        client: "MockFirestore",
        collection_name: str,
        filters: Tuple = (),
        orders: Tuple = (),
        limit_count: Optional[int] = None,
    ):
        self._client = client
        self._collection_name = collection_name
        self._filters = filters
        self._orders = orders
        self._limit = limit_count

    def _copy(self, **overrides) -> "MockQuery":
        params = {
            "filters": self._filters,
            "orders": self._orders,
            "limit_count": self._limit,
        }
        params.update(overrides)
        return MockQuery(self._client, self._collection_name, **params)

    def where(self, field_path: str, op_string: str, value: Any) -> "MockQuery":
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "MockQuery":
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count: int) -> "MockQuery":
        return self._copy(limit_count=count)

    def stream(self, timeout: Optional[float] = None) -> Iterator[MockDocumentSnapshot]:
        with self._client._lock:
            items = list(self._client._store.get(self._collection_name, {}).items())

        results: List[Tuple[str, Dict]] = []
        for doc_id, data in items:
            if all(_matches(_get_path(data, f), op, v) for f, op, v in self._filters):
                results.append((doc_id, data))

        for field_path, direction in reversed(self._orders):
            results = [r for r in results if _get_path(r[1], field_path) is not _MISSING]
            results.sort(
                key=lambda r: _get_path(r[1], field_path),
                reverse=(direction == firestore.Query.DESCENDING),
            )

        if self._limit is not None:
            results = results[: self._limit]

        for doc_id, data in results:
            ref = MockDocumentReference(self._client, self._collection_name, doc_id)
            yield MockDocumentSnapshot(ref, data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, client: "MockFirestore", name: str):
        super().__init__(client, name)
        self.id = name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._client, self._collection_name, document_id or uuid.uuid4().hex[:20])

    def add(self, document_data: Dict, document_id: Optional[str] = None):
        ref = self.document(document_id)
        ref.set(document_data)
        return datetime.now(timezone.utc), ref


class MockFirestore:
    """Thread-safe in-memory document store with the Firestore client surface."""

    def __init__(self, path: Optional[str] = None):
        self._store: Dict[str, Dict[str, Dict]] = {}
        self._lock = threading.RLock()
        self._path = path
        if path and os.path.exists(path):
            self._load()

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [MockCollectionReference(self, name) for name in self._store]

    def _load(self) -> None:
        with open(self._path, "r", encoding="utf-8") as f:
            self._store = json.load(f, object_hook=_decode_datetime)
        logger.info(f"[MOCK DB] Loaded {sum(len(d) for d in self._store.values())} documents from {self._path}")

    def _persist(self) -> None:
        if not self._path:
            return
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._store, f, default=_encode_datetime, indent=2)


def _encode_datetime(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_datetime(obj: Dict) -> Any:
    if set(obj.keys()) == {"__datetime__"}:
        return datetime.fromisoformat(obj["__datetime__"])
    return obj


_mock_db: Optional[MockFirestore] = None


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    global _mock_db
    if _mock_db is None:
        _mock_db = MockFirestore(path)
    return _mock_db
