"""Blob storage adapters for media."""

from cruxfeed.infrastructure.storage.gridfs_storage import GridFSBlobStorage
from cruxfeed.infrastructure.storage.in_memory import InMemoryBlobStorage

__all__ = ["GridFSBlobStorage", "InMemoryBlobStorage"]
