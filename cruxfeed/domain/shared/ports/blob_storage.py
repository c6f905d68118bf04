"""
Blob storage port.

Binary media (images, videos, thumbnails) lives outside the document
store. Documents only keep the download URL.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IBlobStorage(Protocol):
    """
    Blob storage contract.

    Implementations:
    - InMemoryBlobStorage (tests)
    - GridFSBlobStorage (MongoDB GridFS via motor)
    """

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under a path.

        Args:
            path: Logical path, e.g. "images/user_1/abc.jpg"
            data: Raw content
            content_type: MIME type

        Returns:
            Download URL of the stored blob

        Raises:
            BlobStorageError: On storage failure
        """
        ...

    async def download_url(self, path: str) -> str:
        """
        Resolve the download URL of a stored blob.

        Raises:
            NotFoundError: If nothing is stored under path
        """
        ...

    async def delete(self, url: str) -> None:
        """
        Delete the blob behind a download URL.

        Raises:
            NotFoundError: If the blob does not exist
        """
        ...
