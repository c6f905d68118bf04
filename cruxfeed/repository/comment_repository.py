"""
Comment repository.

Comments live in activityItems/{item_id}/comments. Every add/delete
commits the comment write together with the parent's commentCount
update, so the counter never drifts from the sub-collection through this
repository.
"""

from __future__ import annotations

from typing import List

import structlog

from cruxfeed.domain.activity.codec import CommentCodec
from cruxfeed.domain.activity.models import Comment
from cruxfeed.domain.shared.coerce import as_str
from cruxfeed.domain.shared.errors import (
    ActivityNotFoundError,
    CommentNotFoundError,
    DocumentNotFoundError,
)
from cruxfeed.domain.shared.ports.document_store import IDocumentStore, Increment, Query
from cruxfeed.repository.collections import ACTIVITY_ITEMS, comments_of
from cruxfeed.repository.user_repository import UserRepository

logger = structlog.get_logger(__name__)


class CommentRepository:
    """Comments of activity items."""

    def __init__(self, store: IDocumentStore, users: UserRepository) -> None:
        self._store = store
        self._users = users

    async def fetch(self, item_id: str) -> List[Comment]:
        """
        Comments of an item, oldest first.

        Comments whose author cannot be resolved are left out.
        """
        snapshots = await self._store.query(Query(comments_of(item_id)).order("timeStamp"))
        author_ids = {as_str(s.data, "authorId") for s in snapshots}
        authors = await self._users.get_many_as_map(a for a in author_ids if a)

        comments: List[Comment] = []
        for snapshot in snapshots:
            author = authors.get(as_str(snapshot.data, "authorId") or "")
            if author is None:
                logger.info("Dropping comment", item_id=item_id, comment_id=snapshot.id)
                continue
            data = snapshot.data if snapshot.get("id") else {**snapshot.data, "id": snapshot.id}
            comment = CommentCodec.decode(data, author)
            if comment is not None:
                comments.append(comment)
        return comments

    async def add(self, item_id: str, comment: Comment) -> Comment:
        """
        Store a comment and bump the item's commentCount.

        Raises:
            ActivityNotFoundError: If the item does not exist (nothing is written)
        """
        batch = self._store.batch()
        batch.set(comments_of(item_id), comment.id, CommentCodec.encode(comment))
        batch.update(ACTIVITY_ITEMS, item_id, {"commentCount": Increment(1)})
        try:
            await batch.commit()
        except DocumentNotFoundError as e:
            raise ActivityNotFoundError(item_id) from e

        logger.info("Comment added", item_id=item_id, comment_id=comment.id)
        return comment

    async def delete(self, item_id: str, comment_id: str) -> None:
        """
        Remove a comment and decrement commentCount (floor 0).

        Raises:
            CommentNotFoundError: If the comment does not exist
            ActivityNotFoundError: If the parent item is gone
        """
        if await self._store.get(comments_of(item_id), comment_id) is None:
            raise CommentNotFoundError(item_id, comment_id)

        batch = self._store.batch()
        batch.delete(comments_of(item_id), comment_id)
        batch.update(ACTIVITY_ITEMS, item_id, {"commentCount": Increment(-1, floor=0)})
        try:
            await batch.commit()
        except DocumentNotFoundError as e:
            raise ActivityNotFoundError(item_id) from e

        logger.info("Comment deleted", item_id=item_id, comment_id=comment_id)
