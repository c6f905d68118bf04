"""
MongoDB implementation of the IDocumentStore port (motor).

Storage design:
- One MongoDB collection per collection path, sub-collections flattened
  to "parent.child" with a ``_parent`` field (see translate.py)
- Field updates run as aggregation-pipeline updates, so floored counter
  increments are a single atomic server-side operation
- Write batches run inside a multi-document transaction (requires a
  replica set, which Atlas always provides)
- Creates are plain inserts: the unique _id turns a second create of the
  same document into DuplicateKeyError, surfaced as DocumentExistsError.
  Two transactions racing on the same _id may instead abort with a write
  conflict, surfaced as StoreError; either way only one of them commits.
- Listeners re-run their query on every change-stream event
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Dict, List, Optional, Tuple

import structlog
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import DuplicateKeyError, PyMongoError

from cruxfeed.domain.shared.errors import DocumentExistsError, DocumentNotFoundError, StoreError
from cruxfeed.domain.shared.ports.document_store import (
    BufferedWrite,
    DocumentSnapshot,
    ErrorCallback,
    FieldValue,
    Query,
    SnapshotCallback,
)
from cruxfeed.infrastructure.persistence.mongodb.translate import (
    PARENT_FIELD,
    build_filter,
    build_sort,
    build_update_pipeline,
    from_stored,
    id_filter,
    split_path,
    to_stored,
)

logger = structlog.get_logger(__name__)

# (collection, keys, name)
INDEXES: Tuple[Tuple[str, List[Tuple[str, int]], str], ...] = (
    ("activityItems", [("authorId", 1), ("createdAt", -1)], "idx_author_recent"),
    ("activityItems", [("gymId", 1), ("createdAt", -1)], "idx_gym_recent"),
    ("activityItems", [("isFeatured", 1), ("type", 1), ("createdAt", -1)], "idx_featured"),
    ("activityItems", [("type", 1), ("visitDate", 1)], "idx_visit_date"),
    ("userRelationships", [("followerId", 1)], "idx_follower"),
    ("userRelationships", [("followingId", 1)], "idx_following"),
    ("gymAdministrators", [("userId", 1), ("gymId", 1)], "idx_user_gym"),
    ("gymVisits", [("date", 1)], "idx_date"),
    ("notifications", [("userId", 1), ("timestamp", -1)], "idx_user_recent"),
    ("conversations", [("participants", 1), ("lastMessageTimestamp", -1)], "idx_participant"),
    ("activityItems.comments", [(PARENT_FIELD, 1), ("timeStamp", 1)], "idx_parent_time"),
    ("activityItems.likes", [(PARENT_FIELD, 1)], "idx_parent"),
    ("conversations.messages", [(PARENT_FIELD, 1), ("timestamp", 1)], "idx_parent_time"),
)


class MongoWriteBatch:
    """Buffered writes committed in one MongoDB transaction."""

    def __init__(self, store: "MongoDocumentStore") -> None:
        self._store = store
        self._writes: List[BufferedWrite] = []

    def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> "MongoWriteBatch":
        self._writes.append(BufferedWrite("set", path, doc_id, dict(data)))
        return self

    def update(self, path: str, doc_id: str, fields: Dict[str, FieldValue]) -> "MongoWriteBatch":
        self._writes.append(BufferedWrite("update", path, doc_id, dict(fields)))
        return self

    def create(self, path: str, doc_id: str, data: Dict[str, Any]) -> "MongoWriteBatch":
        self._writes.append(BufferedWrite("create", path, doc_id, dict(data)))
        return self

    def delete(self, path: str, doc_id: str, must_exist: bool = False) -> "MongoWriteBatch":
        self._writes.append(BufferedWrite("delete", path, doc_id, must_exist=must_exist))
        return self

    def __len__(self) -> int:
        return len(self._writes)

    async def commit(self) -> None:
        if not self._writes:
            return
        await self._store._commit(self._writes)


class MongoListener:
    """Change-stream backed query subscription."""

    def __init__(
        self,
        store: "MongoDocumentStore",
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        self._store = store
        self._query = query
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._task: "asyncio.Task[None]" = asyncio.get_running_loop().create_task(self._run())

    def remove(self) -> None:
        self._task.cancel()

    async def _deliver(self) -> None:
        snapshots = await self._store.query(self._query)
        result = self._on_snapshot(snapshots)
        if inspect.isawaitable(result):
            await result

    async def _run(self) -> None:
        collection, _ = self._store._resolve(self._query.collection)
        try:
            await self._deliver()
            async with collection.watch() as stream:
                async for _change in stream:
                    await self._deliver()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Listener stopped", collection=self._query.collection, error=str(e))
            if self._on_error is not None:
                result = self._on_error(e)
                if inspect.isawaitable(result):
                    await result


class MongoDocumentStore:
    """
    MongoDB document store.

    Example:
        >>> from motor.motor_asyncio import AsyncIOMotorClient
        >>> client = AsyncIOMotorClient("mongodb://localhost:27017", tz_aware=True)
        >>> store = MongoDocumentStore(client.cruxfeed, client)
        >>> await store.set("users", "u1", {"id": "u1", "firstName": "Ada"})
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase[Any],
        client: Optional[AsyncIOMotorClient[Any]] = None,
    ) -> None:
        """
        Initialize store with MongoDB database.

        Args:
            db: Motor database handle
            client: Owning client, required for batches (transactions)
        """
        self.db = db
        self.client = client
        self._indexes_created = False

    def _resolve(self, path: str) -> Tuple[AsyncIOMotorCollection[Any], Optional[str]]:
        name, parent = split_path(path)
        return self.db[name], parent

    async def _ensure_indexes(self) -> None:
        """Create the secondary indexes queries rely on (once)."""
        if self._indexes_created:
            return
        try:
            for name, keys, index_name in INDEXES:
                await self.db[name].create_index(keys, name=index_name)
        except PyMongoError as e:
            raise StoreError(f"Index creation failed: {e}") from e
        self._indexes_created = True

    # ============================================================
    # CRUD
    # ============================================================

    async def get(self, path: str, doc_id: str) -> Optional[DocumentSnapshot]:
        await self._ensure_indexes()
        collection, parent = self._resolve(path)
        try:
            doc = await collection.find_one(id_filter(parent, doc_id))
        except PyMongoError as e:
            logger.error("find_one failed", path=path, doc_id=doc_id, error=str(e))
            raise StoreError(f"Read of {path}/{doc_id} failed: {e}") from e
        if doc is None:
            return None
        stored_id, data = from_stored(doc)
        return DocumentSnapshot(path=path, id=stored_id, data=data)

    async def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        await self._ensure_indexes()
        collection, parent = self._resolve(path)
        try:
            await collection.replace_one(
                id_filter(parent, doc_id), to_stored(parent, doc_id, data), upsert=True
            )
        except PyMongoError as e:
            logger.error("replace_one failed", path=path, doc_id=doc_id, error=str(e))
            raise StoreError(f"Write of {path}/{doc_id} failed: {e}") from e

    async def create(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        await self._ensure_indexes()
        collection, parent = self._resolve(path)
        try:
            await collection.insert_one(to_stored(parent, doc_id, data))
        except DuplicateKeyError as e:
            raise DocumentExistsError(path, doc_id) from e
        except PyMongoError as e:
            logger.error("insert_one failed", path=path, doc_id=doc_id, error=str(e))
            raise StoreError(f"Create of {path}/{doc_id} failed: {e}") from e

    async def update(self, path: str, doc_id: str, fields: Dict[str, FieldValue]) -> None:
        await self._ensure_indexes()
        collection, parent = self._resolve(path)
        try:
            result = await collection.update_one(
                id_filter(parent, doc_id), build_update_pipeline(fields)
            )
        except PyMongoError as e:
            logger.error("update_one failed", path=path, doc_id=doc_id, error=str(e))
            raise StoreError(f"Update of {path}/{doc_id} failed: {e}") from e
        if result.matched_count == 0:
            raise DocumentNotFoundError(path, doc_id)

    async def delete(self, path: str, doc_id: str) -> None:
        await self._ensure_indexes()
        collection, parent = self._resolve(path)
        try:
            await collection.delete_one(id_filter(parent, doc_id))
        except PyMongoError as e:
            logger.error("delete_one failed", path=path, doc_id=doc_id, error=str(e))
            raise StoreError(f"Delete of {path}/{doc_id} failed: {e}") from e

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        await self._ensure_indexes()
        collection, parent = self._resolve(query.collection)
        try:
            cursor = collection.find(build_filter(query, parent)).sort(build_sort(query))
            if query.limit is not None:
                cursor = cursor.limit(query.limit)
            docs = await cursor.to_list(length=query.limit)
        except PyMongoError as e:
            logger.error("find failed", path=query.collection, error=str(e))
            raise StoreError(f"Query on {query.collection} failed: {e}") from e

        snapshots = []
        for doc in docs:
            doc_id, data = from_stored(doc)
            snapshots.append(DocumentSnapshot(path=query.collection, id=doc_id, data=data))
        return snapshots

    # ============================================================
    # BATCHES AND LISTENERS
    # ============================================================

    def batch(self) -> MongoWriteBatch:
        return MongoWriteBatch(self)

    async def _commit(self, writes: List[BufferedWrite]) -> None:
        if self.client is None:
            raise StoreError("Write batches require a MongoDB client (transactions)")
        await self._ensure_indexes()
        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    for write in writes:
                        await self._apply(write, session)
        except PyMongoError as e:
            logger.error("Batch commit failed", writes=len(writes), error=str(e))
            raise StoreError(f"Batch of {len(writes)} writes failed: {e}") from e
        logger.debug("Batch committed", writes=len(writes))

    async def _apply(self, write: BufferedWrite, session: AsyncIOMotorClientSession) -> None:
        collection, parent = self._resolve(write.path)
        selector = id_filter(parent, write.doc_id)
        if write.kind == "set":
            await collection.replace_one(
                selector, to_stored(parent, write.doc_id, write.data), upsert=True, session=session
            )
        elif write.kind == "create":
            try:
                await collection.insert_one(
                    to_stored(parent, write.doc_id, write.data), session=session
                )
            except DuplicateKeyError as e:
                raise DocumentExistsError(write.path, write.doc_id) from e
        elif write.kind == "update":
            result = await collection.update_one(
                selector, build_update_pipeline(write.data), session=session
            )
            if result.matched_count == 0:
                raise DocumentNotFoundError(write.path, write.doc_id)
        else:
            result = await collection.delete_one(selector, session=session)
            if write.must_exist and result.deleted_count == 0:
                raise DocumentNotFoundError(write.path, write.doc_id)

    def listen(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> MongoListener:
        return MongoListener(self, query, on_snapshot, on_error)

    def close(self) -> None:
        """Close the owning client, if any."""
        if self.client is not None:
            self.client.close()
            logger.info("Closed MongoDB client")
