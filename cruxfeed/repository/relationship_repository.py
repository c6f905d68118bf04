"""
Follow graph repository.

Edges live in "userRelationships" with the deterministic id
"{followerId}_{followingId}", so two racing follow() calls write the same
document. follow() still checks for an existing edge first, and unfollow()
removes every matching edge, including legacy random-id duplicates.

Follow sets are cached per follower and only invalidated by mutations
made through this repository instance; edges written elsewhere are not
seen until clear_cache().
"""

from __future__ import annotations

from typing import FrozenSet, List

import structlog

from cruxfeed.domain.shared.ports.document_store import IDocumentStore, Query
from cruxfeed.domain.user.codec import RelationshipCodec
from cruxfeed.domain.user.models import User, UserRelationship
from cruxfeed.infrastructure.cache import KeyedCache
from cruxfeed.repository.collections import USER_RELATIONSHIPS
from cruxfeed.repository.user_repository import UserRepository

logger = structlog.get_logger(__name__)


class RelationshipRepository:
    """Directed follow edges between users."""

    def __init__(self, store: IDocumentStore, users: UserRepository) -> None:
        self._store = store
        self._users = users
        self._following: KeyedCache[str, FrozenSet[str]] = KeyedCache("following")

    def _edge_query(self, follower_id: str, following_id: str) -> Query:
        return (
            Query(USER_RELATIONSHIPS)
            .where("followerId", "==", follower_id)
            .where("followingId", "==", following_id)
        )

    async def follow(self, follower_id: str, following_id: str) -> bool:
        """
        Create the edge unless it already exists.

        Returns:
            True if a new edge was written
        """
        existing = await self._store.query(self._edge_query(follower_id, following_id))
        if existing:
            return False

        relationship = UserRelationship.create(follower_id, following_id)
        await self._store.set(
            USER_RELATIONSHIPS, relationship.id, RelationshipCodec.encode(relationship)
        )

        cached = self._following.get(follower_id)
        if cached is not None:
            await self._following.put(follower_id, cached | {following_id})

        logger.info("Followed user", follower_id=follower_id, following_id=following_id)
        return True

    async def unfollow(self, follower_id: str, following_id: str) -> int:
        """
        Delete every edge follower -> following.

        Returns:
            Number of edges removed (0 when not following)
        """
        edges = await self._store.query(self._edge_query(follower_id, following_id))
        if not edges:
            return 0

        batch = self._store.batch()
        for edge in edges:
            batch.delete(USER_RELATIONSHIPS, edge.id)
        await batch.commit()

        cached = self._following.get(follower_id)
        if cached is not None:
            await self._following.put(follower_id, cached - {following_id})

        logger.info(
            "Unfollowed user",
            follower_id=follower_id,
            following_id=following_id,
            edges=len(edges),
        )
        return len(edges)

    async def _load_following(self, user_id: str) -> List[str]:
        snapshots = await self._store.query(
            Query(USER_RELATIONSHIPS).where("followerId", "==", user_id).order("timestamp")
        )
        ids = [s.get("followingId") for s in snapshots]
        following = list(dict.fromkeys(i for i in ids if isinstance(i, str) and i))
        await self._following.put(user_id, frozenset(following))
        return following

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        cached = self._following.get(follower_id)
        if cached is None:
            return following_id in await self._load_following(follower_id)
        return following_id in cached

    async def get_following_ids(self, user_id: str) -> List[str]:
        """Ids the user follows (cache-backed)."""
        cached = self._following.get(user_id)
        if cached is not None:
            return sorted(cached)
        return await self._load_following(user_id)

    async def get_following(self, user_id: str) -> List[User]:
        """Users the user follows. Always re-reads the edges and refreshes the cache."""
        following_ids = await self._load_following(user_id)
        return await self._users.get_many(following_ids)

    async def get_followers(self, user_id: str) -> List[User]:
        snapshots = await self._store.query(
            Query(USER_RELATIONSHIPS).where("followingId", "==", user_id).order("timestamp")
        )
        ids = [s.get("followerId") for s in snapshots]
        follower_ids = list(dict.fromkeys(i for i in ids if isinstance(i, str) and i))
        return await self._users.get_many(follower_ids)

    async def clear_cache(self) -> None:
        await self._following.clear()
