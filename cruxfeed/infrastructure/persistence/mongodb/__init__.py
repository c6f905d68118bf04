"""MongoDB (motor) document store."""

from cruxfeed.infrastructure.persistence.mongodb.document_store import (
    MongoDocumentStore,
    MongoWriteBatch,
)

__all__ = ["MongoDocumentStore", "MongoWriteBatch"]
