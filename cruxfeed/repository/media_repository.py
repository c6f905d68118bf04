"""
Media repository.

Stores binary media through the blob storage port and returns Media
descriptors to embed in posts. Transcoding and thumbnail extraction are
the caller's job: a video thumbnail arrives here as ready-made bytes.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

import structlog

from cruxfeed.domain.activity.models import Media, MediaType
from cruxfeed.domain.shared.ids import new_id
from cruxfeed.domain.shared.ports.blob_storage import IBlobStorage

logger = structlog.get_logger(__name__)

THUMBNAILS = "thumbnails"
THUMBNAIL_CONTENT_TYPE = "image/jpeg"


class MediaKind(str, Enum):
    """Top-level storage folder of an upload."""

    IMAGE = "images"
    VIDEO = "videos"
    GYM_IMAGE = "gym_images"
    USER_PROFILE = "user_profiles"
    BETA_MEDIA = "beta_media"
    EVENT_MEDIA = "event_media"


_EXTENSIONS: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/heic": "heic",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
}


def extension_for(content_type: str) -> str:
    return _EXTENSIONS.get(content_type.lower(), "bin")


def media_type_for(content_type: str) -> MediaType:
    if content_type.startswith("video/"):
        return MediaType.VIDEO
    if content_type.startswith("image/"):
        return MediaType.IMAGE
    return MediaType.NONE


def storage_path(kind: MediaKind, owner_id: str, content_type: str) -> str:
    """
    "{folder}/{owner}/{uuid}.{ext}"

    Example:
        >>> storage_path(MediaKind.BETA_MEDIA, "u1", "image/jpeg")  # doctest: +SKIP
        'beta_media/u1/0b6f...c2.jpg'
    """
    return f"{kind.value}/{owner_id}/{new_id()}.{extension_for(content_type)}"


class MediaRepository:
    """Upload and delete post media."""

    def __init__(self, storage: IBlobStorage) -> None:
        self._storage = storage

    async def upload(
        self,
        data: bytes,
        owner_id: str,
        kind: MediaKind = MediaKind.IMAGE,
        content_type: str = "image/jpeg",
        thumbnail: Optional[bytes] = None,
    ) -> Media:
        """
        Upload bytes and describe them as Media.

        Args:
            data: File content
            owner_id: User (or gym/event) the media belongs to
            kind: Storage folder
            content_type: MIME type; decides the file extension and MediaType
            thumbnail: Optional JPEG preview, stored under thumbnails/{path}.jpg

        Raises:
            BlobStorageError: On storage failure
        """
        path = storage_path(kind, owner_id, content_type)
        url = await self._storage.upload(path, data, content_type)

        thumbnail_url: Optional[str] = None
        if thumbnail is not None:
            thumbnail_url = await self._storage.upload(
                f"{THUMBNAILS}/{path}.jpg", thumbnail, THUMBNAIL_CONTENT_TYPE
            )

        media = Media(
            url=url,
            type=media_type_for(content_type),
            thumbnail_url=thumbnail_url,
            owner_id=owner_id,
            storage_path=path,
        )
        logger.info("Media uploaded", media_id=media.id, path=path, type=media.type.value)
        return media

    async def delete(self, media: Media) -> None:
        """
        Delete the media file and its thumbnail, if any.

        Raises:
            NotFoundError: If a blob is already gone
        """
        await self._storage.delete(media.url)
        if media.thumbnail_url:
            await self._storage.delete(media.thumbnail_url)
        logger.info("Media deleted", media_id=media.id)
