"""
Domain exceptions.

Typed exceptions surfaced by every repository operation.
Callers catch the family they care about (NotFoundError, InvalidStateError,
...) or DomainError for everything.
"""

from __future__ import annotations


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Root of the cruxfeed error hierarchy.

    Store failures are wrapped too, so one except clause covers every
    repository call.
    """

    pass


# ═══════════════════════════════════════════════════════════
# NOT FOUND
# ═══════════════════════════════════════════════════════════


class NotFoundError(DomainError):
    """
    Requested single entity does not exist.

    Surfaced to the caller, never retried.

    Example:
        >>> raise NotFoundError("Gym gym_123 not found")
    """

    pass


class UserNotFoundError(NotFoundError):
    """User document missing or undecodable."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class ActivityNotFoundError(NotFoundError):
    """Activity item missing."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Activity item not found: {item_id}")


class CommentNotFoundError(NotFoundError):
    """Comment missing from an activity item's comments."""

    def __init__(self, item_id: str, comment_id: str):
        self.item_id = item_id
        self.comment_id = comment_id
        super().__init__(f"Comment {comment_id} not found on item {item_id}")


class DocumentNotFoundError(NotFoundError):
    """
    Document store update targeted a missing document.

    Raised by IDocumentStore.update() (set() creates, update() does not).
    """

    def __init__(self, path: str, doc_id: str):
        self.path = path
        self.doc_id = doc_id
        super().__init__(f"No document {path}/{doc_id}")


# ═══════════════════════════════════════════════════════════
# CONFLICTS
# ═══════════════════════════════════════════════════════════


class DocumentExistsError(DomainError):
    """
    Document store create targeted an existing document.

    Raised by IDocumentStore.create() and by batches holding a create;
    nothing from the batch is written.
    """

    def __init__(self, path: str, doc_id: str):
        self.path = path
        self.doc_id = doc_id
        super().__init__(f"Document already exists: {path}/{doc_id}")


# ═══════════════════════════════════════════════════════════
# STATE / INPUT / IDENTITY
# ═══════════════════════════════════════════════════════════


class InvalidStateError(DomainError):
    """
    Operation attempted on a document missing required structure.

    Raised when:
    - Item is not a visit (join/leave on a post)
    - Attendees list cannot be read
    - Activity document has no author or type

    The operation is aborted before any write.

    Example:
        >>> raise InvalidStateError("Item abc123 is not a visit")
    """

    pass


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Page size below 1
    - Conversation with fewer than two participants
    - "in" filter with more values than the store allows

    Example:
        >>> raise ValidationError("page_size must be >= 1")
    """

    pass


class UnauthenticatedError(DomainError):
    """
    Mutating operation attempted without a caller identity.

    Raised before any write happens.
    """

    pass


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """
    Infrastructure layer error.

    Base class for document store and blob storage errors.
    """

    pass


class StoreError(InfrastructureError):
    """
    Document store operation failed.

    Raised when:
    - Connection lost
    - Query rejected by the server
    - Batch/transaction aborted

    Propagated unchanged to the caller; the core never retries.

    Example:
        >>> raise StoreError("MongoDB connection lost")
    """

    pass


class BlobStorageError(InfrastructureError):
    """
    Blob storage operation failed.

    Example:
        >>> raise BlobStorageError("Upload of images/u1/abc.jpg failed")
    """

    pass
