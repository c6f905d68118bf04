"""In-memory blob storage for tests."""

from typing import Dict, Tuple

import structlog

from cruxfeed.domain.shared.errors import NotFoundError
from cruxfeed.infrastructure.storage.urls import make_url, path_from_url

logger = structlog.get_logger(__name__)

SCHEME = "memory"


class InMemoryBlobStorage:
    """
    Dict-backed IBlobStorage.

    Example:
        >>> storage = InMemoryBlobStorage()
        >>> url = await storage.upload("images/u1/a.jpg", b"...", "image/jpeg")
        >>> url
        'memory://media/images/u1/a.jpg'
    """

    def __init__(self, bucket: str = "media") -> None:
        self.bucket = bucket
        self._blobs: Dict[str, Tuple[bytes, str]] = {}

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        self._blobs[path] = (bytes(data), content_type)
        logger.debug("Blob stored", path=path, size=len(data))
        return make_url(SCHEME, self.bucket, path)

    async def download_url(self, path: str) -> str:
        if path not in self._blobs:
            raise NotFoundError(f"No blob at {path}")
        return make_url(SCHEME, self.bucket, path)

    async def delete(self, url: str) -> None:
        path = path_from_url(SCHEME, self.bucket, url)
        if self._blobs.pop(path, None) is None:
            raise NotFoundError(f"No blob at {path}")

    def contains(self, path: str) -> bool:
        return path in self._blobs

    def content(self, path: str) -> Tuple[bytes, str]:
        return self._blobs[path]
