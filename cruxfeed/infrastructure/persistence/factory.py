"""Store factory for the persistence layer.

Environment-based backend selection:
- .env (runtime): STORE_BACKEND=mongodb (production persistence)
- tests: STORE_BACKEND=inmemory (fast, isolated)
- Default: inmemory (safe fallback if env vars not set)

Usage:
    from cruxfeed.infrastructure.persistence.factory import (
        create_document_store,
        get_document_store,
    )

    store = create_document_store()  # inmemory or mongodb based on env
    store = get_document_store()     # Singleton instance
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import structlog
from motor.motor_asyncio import AsyncIOMotorClient

from cruxfeed.domain.shared.ports.blob_storage import IBlobStorage
from cruxfeed.domain.shared.ports.document_store import IDocumentStore
from cruxfeed.infrastructure.config import (
    get_blob_bucket,
    get_mongodb_database,
    get_mongodb_uri,
    get_store_backend,
)
from cruxfeed.infrastructure.persistence.in_memory import InMemoryDocumentStore
from cruxfeed.infrastructure.persistence.mongodb import MongoDocumentStore
from cruxfeed.infrastructure.storage import GridFSBlobStorage, InMemoryBlobStorage

logger = structlog.get_logger(__name__)

_SUPPORTED_BACKENDS = ("inmemory", "mongodb")

_mongo_client: Optional[AsyncIOMotorClient[Any]] = None
_document_store: Optional[IDocumentStore] = None
_blob_storage: Optional[IBlobStorage] = None


def _backend() -> str:
    mode = get_store_backend()
    if mode not in _SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported STORE_BACKEND={mode!r}. Use one of: {', '.join(_SUPPORTED_BACKENDS)}"
        )
    return mode


def _get_mongo_client() -> Tuple[AsyncIOMotorClient[Any], str]:
    """Shared motor client for the document store and GridFS."""
    global _mongo_client
    uri = get_mongodb_uri()
    if not uri:
        raise ValueError(
            "STORE_BACKEND=mongodb but MONGODB_URI not set. "
            "Set MONGODB_URI in .env or use STORE_BACKEND=inmemory"
        )
    if _mongo_client is None:
        _mongo_client = AsyncIOMotorClient(uri, tz_aware=True)
    return _mongo_client, get_mongodb_database()


def create_document_store() -> IDocumentStore:
    """Create document store based on STORE_BACKEND env var.

    Values:
        - "inmemory": In-memory store (default, fast, transient)
        - "mongodb": MongoDB store (persistent, requires MONGODB_URI)

    Raises:
        ValueError: If mongodb selected but MONGODB_URI not set, or the
            backend name is unknown
    """
    if _backend() == "mongodb":
        client, database = _get_mongo_client()
        logger.info("Using MongoDB document store", database=database)
        return MongoDocumentStore(client[database], client)

    logger.info("Using in-memory document store")
    return InMemoryDocumentStore()


def get_document_store() -> IDocumentStore:
    """Singleton document store."""
    global _document_store
    if _document_store is None:
        _document_store = create_document_store()
    return _document_store


def create_blob_storage() -> IBlobStorage:
    """Create blob storage matching STORE_BACKEND (GridFS for mongodb)."""
    if _backend() == "mongodb":
        client, database = _get_mongo_client()
        return GridFSBlobStorage(client[database], bucket=get_blob_bucket())
    return InMemoryBlobStorage(bucket=get_blob_bucket())


def get_blob_storage() -> IBlobStorage:
    """Singleton blob storage."""
    global _blob_storage
    if _blob_storage is None:
        _blob_storage = create_blob_storage()
    return _blob_storage


def reset_stores() -> None:
    """Reset singletons.

    Useful for testing to force re-creation with different env vars.

    Example:
        reset_stores()
        os.environ["STORE_BACKEND"] = "inmemory"
        store = get_document_store()  # Creates new instance
    """
    global _mongo_client, _document_store, _blob_storage
    if _mongo_client is not None:
        _mongo_client.close()
    _mongo_client = None
    _document_store = None
    _blob_storage = None
