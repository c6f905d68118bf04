"""
User repository.

Cache-first user lookups. The cache is a KeyedCache owned by the
repository instance: it is filled on reads, refreshed on writes through
this repository, and otherwise never expires.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

import structlog

from cruxfeed.domain.shared.errors import (
    DocumentNotFoundError,
    DomainError,
    NotFoundError,
    UserNotFoundError,
)
from cruxfeed.domain.shared.ports.document_store import IDocumentStore, Increment
from cruxfeed.domain.user.codec import UserCodec
from cruxfeed.domain.user.models import User
from cruxfeed.infrastructure.cache import KeyedCache
from cruxfeed.repository.collections import USERS
from cruxfeed.repository.scan import fetch_where_in, scan

logger = structlog.get_logger(__name__)


class UserRepository:
    """
    Users collection access.

    Example:
        >>> users = UserRepository(store)
        >>> await users.create(User(id="u1", email="a@b.c", first_name="Ada", last_name="O"))
        >>> (await users.get("u1")).full_name
        'Ada O'
    """

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store
        self._cache: KeyedCache[str, User] = KeyedCache("users")

    async def get(self, user_id: str) -> User:
        """
        Get a user, cache first.

        Raises:
            UserNotFoundError: If the document is absent or undecodable
            StoreError: On store failure
        """
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        snapshot = await self._store.get(USERS, user_id)
        user = UserCodec.decode(snapshot.data) if snapshot is not None else None
        if user is None:
            raise UserNotFoundError(user_id)

        await self._cache.put(user_id, user)
        return user

    async def get_many(self, user_ids: Iterable[str]) -> List[User]:
        """
        Resolve users in order, skipping ids that cannot be resolved.

        A failure on one id (missing document or store error) is logged
        and skipped; it never fails the whole lookup.
        """
        users: List[User] = []
        for user_id in user_ids:
            try:
                users.append(await self.get(user_id))
            except NotFoundError:
                logger.warning("Skipping unresolvable user", user_id=user_id)
            except DomainError as e:
                logger.warning("Skipping user after lookup failure", user_id=user_id, error=str(e))
        return users

    async def get_many_as_map(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """
        Resolve users into an id -> User map.

        Cached users are served from the cache; the rest are fetched with
        "id in [...]" queries in chunks of at most 10 and backfilled into
        the cache. Missing ids are simply absent from the result.
        """
        wanted = list(dict.fromkeys(user_ids))
        if not wanted:
            return {}

        result = self._cache.get_many(wanted)
        missing = [uid for uid in wanted if uid not in result]
        if not missing:
            return result

        fetched: Dict[str, User] = {}
        for snapshot in await fetch_where_in(self._store, USERS, "id", missing):
            user = UserCodec.decode(snapshot.data)
            if user is not None:
                fetched[user.id] = user

        await self._cache.put_many(fetched)
        result.update(fetched)
        logger.debug(
            "Resolved users",
            requested=len(wanted),
            from_store=len(fetched),
            unresolved=len(missing) - len(fetched),
        )
        return result

    async def create(self, user: User) -> User:
        await self._store.set(USERS, user.id, UserCodec.encode(user))
        await self._cache.put(user.id, user)
        return user

    async def update(self, user: User) -> User:
        """
        Overwrite the fields of an existing user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        try:
            await self._store.update(USERS, user.id, UserCodec.encode(user))
        except DocumentNotFoundError as e:
            raise UserNotFoundError(user.id) from e
        await self._cache.put(user.id, user)
        return user

    async def adjust_post_count(self, user_id: str, delta: int) -> None:
        """
        Atomically add delta to postCount, never going below 0.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        try:
            await self._store.update(USERS, user_id, {"postCount": Increment(delta, floor=0)})
        except DocumentNotFoundError as e:
            raise UserNotFoundError(user_id) from e
        await self._cache.invalidate(user_id)

    async def search_by_name_or_bio(self, query: str) -> List[User]:
        """
        Case-insensitive substring search on first/last name and bio.

        Linear scan of the users collection; not meant for large data sets.
        """
        if not query.strip():
            return []
        matches: List[User] = []
        async for snapshot in scan(self._store, USERS):
            user = UserCodec.decode(snapshot.data)
            if user is not None and user.matches(query.strip()):
                matches.append(user)
        return matches

    async def clear_cache(self) -> None:
        await self._cache.clear()
