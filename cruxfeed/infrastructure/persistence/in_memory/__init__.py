"""In-memory document store."""

from cruxfeed.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
    InMemoryWriteBatch,
)

__all__ = ["InMemoryDocumentStore", "InMemoryWriteBatch"]
