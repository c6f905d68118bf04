"""Ports (interfaces) implemented by infrastructure adapters."""

from cruxfeed.domain.shared.ports.auth import ICurrentUserProvider, StaticUserProvider
from cruxfeed.domain.shared.ports.blob_storage import IBlobStorage
from cruxfeed.domain.shared.ports.document_store import (
    ArrayUnion,
    DocumentSnapshot,
    FieldFilter,
    IDocumentStore,
    IN_QUERY_LIMIT,
    Increment,
    IWriteBatch,
    ListenerRegistration,
    Query,
    sub_collection,
)

__all__ = [
    "ArrayUnion",
    "DocumentSnapshot",
    "FieldFilter",
    "IBlobStorage",
    "ICurrentUserProvider",
    "IDocumentStore",
    "IN_QUERY_LIMIT",
    "Increment",
    "IWriteBatch",
    "ListenerRegistration",
    "Query",
    "StaticUserProvider",
    "sub_collection",
]
