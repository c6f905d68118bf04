"""
GridFS blob storage (motor).

Blobs are GridFS files whose filename is the logical path. Re-uploading a
path adds a new revision; download_url() always points at the path, and
delete() removes every revision.
"""

from __future__ import annotations

from typing import Any, List

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pymongo.errors import PyMongoError

from cruxfeed.domain.shared.errors import BlobStorageError, NotFoundError
from cruxfeed.infrastructure.storage.urls import make_url, path_from_url

logger = structlog.get_logger(__name__)

SCHEME = "gridfs"


class GridFSBlobStorage:
    """IBlobStorage backed by a GridFS bucket."""

    def __init__(self, db: AsyncIOMotorDatabase[Any], bucket: str = "media") -> None:
        self.bucket_name = bucket
        self._bucket = AsyncIOMotorGridFSBucket(db, bucket_name=bucket)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            await self._bucket.upload_from_stream(
                path, data, metadata={"contentType": content_type}
            )
        except PyMongoError as e:
            logger.error("GridFS upload failed", path=path, error=str(e))
            raise BlobStorageError(f"Upload of {path} failed: {e}") from e
        logger.info("Blob uploaded", path=path, size=len(data), content_type=content_type)
        return make_url(SCHEME, self.bucket_name, path)

    async def _file_ids(self, path: str) -> List[Any]:
        try:
            cursor = self._bucket.find({"filename": path})
            files = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise BlobStorageError(f"Lookup of {path} failed: {e}") from e
        return [f._id for f in files]

    async def download_url(self, path: str) -> str:
        if not await self._file_ids(path):
            raise NotFoundError(f"No blob at {path}")
        return make_url(SCHEME, self.bucket_name, path)

    async def delete(self, url: str) -> None:
        path = path_from_url(SCHEME, self.bucket_name, url)
        file_ids = await self._file_ids(path)
        if not file_ids:
            raise NotFoundError(f"No blob at {path}")
        try:
            for file_id in file_ids:
                await self._bucket.delete(file_id)
        except PyMongoError as e:
            logger.error("GridFS delete failed", path=path, error=str(e))
            raise BlobStorageError(f"Delete of {path} failed: {e}") from e
