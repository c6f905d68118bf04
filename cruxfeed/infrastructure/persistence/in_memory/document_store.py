"""In-memory document store implementation.

Provides an in-memory implementation of the IDocumentStore port for tests
and local development. Collections are plain dicts keyed by document id.
"""

from __future__ import annotations

import asyncio
import inspect
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

import structlog

from cruxfeed.domain.shared.errors import DocumentExistsError, DocumentNotFoundError
from cruxfeed.domain.shared.ports.document_store import (
    ArrayUnion,
    BufferedWrite,
    DocumentSnapshot,
    ErrorCallback,
    FieldValue,
    Increment,
    Query,
    SnapshotCallback,
    sort_key,
)

logger = structlog.get_logger(__name__)

_Collections = Dict[str, Dict[str, Dict[str, Any]]]


def apply_fields(document: Dict[str, Any], fields: Dict[str, FieldValue]) -> None:
    """
    Apply an update to a document in place.

    Keys may be dotted paths; intermediate maps are created as needed.
    """
    for path, value in fields.items():
        parts = path.split(".")
        target = document
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        leaf = parts[-1]
        if isinstance(value, (Increment, ArrayUnion)):
            target[leaf] = value.apply(target.get(leaf))
        else:
            target[leaf] = deepcopy(value)


def run_query(docs: Dict[str, Dict[str, Any]], path: str, query: Query) -> List[DocumentSnapshot]:
    """Evaluate a query against one collection's documents."""
    matched: List[Tuple[str, Dict[str, Any]]] = [
        (doc_id, data) for doc_id, data in docs.items() if query.matches(data)
    ]

    if query.order_by is not None:
        order_field = query.order_by

        def position(item: Tuple[str, Dict[str, Any]]) -> Tuple[Any, str]:
            return (sort_key(DocumentSnapshot(path, item[0], item[1]).get(order_field)), item[0])

        matched.sort(key=position, reverse=query.descending)

        if query.start_after is not None:
            cursor = (sort_key(query.start_after[0]), query.start_after[1])
            if query.descending:
                matched = [m for m in matched if position(m) < cursor]
            else:
                matched = [m for m in matched if position(m) > cursor]
    else:
        matched.sort(key=lambda item: item[0])

    if query.limit is not None:
        matched = matched[: query.limit]

    return [DocumentSnapshot(path=path, id=doc_id, data=deepcopy(data)) for doc_id, data in matched]


class _Listener:
    """Registered query listener."""

    def __init__(
        self,
        store: "InMemoryDocumentStore",
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        self._store = store
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def remove(self) -> None:
        if self.active:
            self.active = False
            self._store._listeners.remove(self)


class InMemoryWriteBatch:
    """
    Buffered writes applied atomically by InMemoryDocumentStore.

    Example:
        >>> batch = store.batch()
        >>> batch.delete("activityItems/a1/likes", "u1")
        >>> batch.update("activityItems", "a1", {"likeCount": Increment(-1, floor=0)})
        >>> await batch.commit()
    """

    def __init__(self, store: "InMemoryDocumentStore") -> None:
        self._store = store
        self._writes: List[BufferedWrite] = []
        self._committed = False

    def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> "InMemoryWriteBatch":
        self._writes.append(BufferedWrite("set", path, doc_id, deepcopy(data)))
        return self

    def update(self, path: str, doc_id: str, fields: Dict[str, FieldValue]) -> "InMemoryWriteBatch":
        self._writes.append(BufferedWrite("update", path, doc_id, dict(fields)))
        return self

    def create(self, path: str, doc_id: str, data: Dict[str, Any]) -> "InMemoryWriteBatch":
        self._writes.append(BufferedWrite("create", path, doc_id, deepcopy(data)))
        return self

    def delete(self, path: str, doc_id: str, must_exist: bool = False) -> "InMemoryWriteBatch":
        self._writes.append(BufferedWrite("delete", path, doc_id, must_exist=must_exist))
        return self

    def __len__(self) -> int:
        return len(self._writes)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        await self._store._commit(self._writes)


class InMemoryDocumentStore:
    """
    In-memory implementation of the IDocumentStore port.

    All mutations are serialized by an asyncio.Lock; documents are deep
    copied on the way in and out so callers can never alias stored state.

    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> store = InMemoryDocumentStore()
        >>> await store.set("users", "u1", {"id": "u1", "firstName": "Ada"})
        >>> (await store.get("users", "u1")).get("firstName")
        'Ada'
    """

    def __init__(self) -> None:
        self._collections: _Collections = {}
        self._lock = asyncio.Lock()
        self._listeners: List[_Listener] = []

    # ============================================================
    # CRUD
    # ============================================================

    async def get(self, path: str, doc_id: str) -> Optional[DocumentSnapshot]:
        data = self._collections.get(path, {}).get(doc_id)
        if data is None:
            return None
        return DocumentSnapshot(path=path, id=doc_id, data=deepcopy(data))

    async def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        async with self._lock:
            self._collections.setdefault(path, {})[doc_id] = deepcopy(data)
        self._notify({path})

    async def create(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        async with self._lock:
            docs = self._collections.setdefault(path, {})
            if doc_id in docs:
                raise DocumentExistsError(path, doc_id)
            docs[doc_id] = deepcopy(data)
        self._notify({path})

    async def update(self, path: str, doc_id: str, fields: Dict[str, FieldValue]) -> None:
        async with self._lock:
            document = self._collections.get(path, {}).get(doc_id)
            if document is None:
                raise DocumentNotFoundError(path, doc_id)
            apply_fields(document, fields)
        self._notify({path})

    async def delete(self, path: str, doc_id: str) -> None:
        async with self._lock:
            removed = self._collections.get(path, {}).pop(doc_id, None)
        if removed is not None:
            self._notify({path})

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        return run_query(self._collections.get(query.collection, {}), query.collection, query)

    def batch(self) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self)

    async def _commit(self, writes: List[BufferedWrite]) -> None:
        """
        Apply writes on a staged copy, then swap it in.

        Preconditions (update/must_exist delete target present, create
        target absent) are checked under the lock, so a failing batch
        leaves the store untouched.
        """
        touched = {w.path for w in writes}
        async with self._lock:
            staged: _Collections = {p: deepcopy(self._collections.get(p, {})) for p in touched}
            for write in writes:
                docs = staged[write.path]
                if write.kind == "set":
                    docs[write.doc_id] = deepcopy(write.data)
                elif write.kind == "create":
                    if write.doc_id in docs:
                        raise DocumentExistsError(write.path, write.doc_id)
                    docs[write.doc_id] = deepcopy(write.data)
                elif write.kind == "update":
                    document = docs.get(write.doc_id)
                    if document is None:
                        raise DocumentNotFoundError(write.path, write.doc_id)
                    apply_fields(document, write.data)
                elif docs.pop(write.doc_id, None) is None and write.must_exist:
                    raise DocumentNotFoundError(write.path, write.doc_id)
            self._collections.update(staged)
        logger.debug("Batch committed", writes=len(writes), collections=sorted(touched))
        self._notify(touched)

    # ============================================================
    # LISTENERS
    # ============================================================

    def listen(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> _Listener:
        listener = _Listener(self, query, on_snapshot, on_error)
        self._listeners.append(listener)
        self._deliver(listener)
        return listener

    def _notify(self, paths: set) -> None:
        for listener in list(self._listeners):
            if listener.active and listener.query.collection in paths:
                self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        snapshots = run_query(
            self._collections.get(listener.query.collection, {}),
            listener.query.collection,
            listener.query,
        )
        try:
            result = listener.on_snapshot(snapshots)
        except Exception as e:
            self._report(listener, e)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            task.add_done_callback(lambda t: self._on_task_done(listener, t))

    def _on_task_done(self, listener: _Listener, task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._report(listener, error)

    def _report(self, listener: _Listener, error: BaseException) -> None:
        logger.warning("Listener callback failed", collection=listener.query.collection, error=str(error))
        if listener.on_error is not None and isinstance(error, Exception):
            result = listener.on_error(error)
            if inspect.isawaitable(result):
                asyncio.ensure_future(result)

    # ============================================================
    # TEST HELPERS
    # ============================================================

    def count(self, path: str) -> int:
        """Number of documents in a collection."""
        return len(self._collections.get(path, {}))

    def clear(self) -> None:
        """Drop all data (listeners stay registered)."""
        self._collections.clear()
