"""Gym repository: gyms and user favourites."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import structlog

from cruxfeed.domain.gym.codec import GymCodec, GymFavoriteCodec
from cruxfeed.domain.gym.models import Gym, GymFavorite
from cruxfeed.domain.shared.errors import DocumentNotFoundError, NotFoundError
from cruxfeed.domain.shared.ports.document_store import IDocumentStore, Query
from cruxfeed.repository.collections import GYMS, USER_FAVORITES
from cruxfeed.repository.scan import fetch_where_in, scan

logger = structlog.get_logger(__name__)


class GymRepository:
    """
    Gyms collection access.

    Unlike users, gyms are not cached: they change rarely but are only
    resolved in batches (get_many_as_map) during feed assembly.
    """

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def create(self, gym: Gym) -> Gym:
        await self._store.set(GYMS, gym.id, GymCodec.encode(gym))
        logger.info("Gym created", gym_id=gym.id, name=gym.name)
        return gym

    async def update(self, gym: Gym) -> Gym:
        """
        Raises:
            NotFoundError: If the gym does not exist
        """
        try:
            await self._store.update(GYMS, gym.id, GymCodec.encode(gym))
        except DocumentNotFoundError as e:
            raise NotFoundError(f"Gym not found: {gym.id}") from e
        return gym

    async def delete(self, gym_id: str) -> None:
        await self._store.delete(GYMS, gym_id)

    async def get(self, gym_id: str) -> Optional[Gym]:
        """Gym by id, None when absent or undecodable."""
        snapshot = await self._store.get(GYMS, gym_id)
        if snapshot is None:
            return None
        return GymCodec.decode(snapshot.data)

    async def fetch_all(self) -> List[Gym]:
        gyms: List[Gym] = []
        async for snapshot in scan(self._store, GYMS):
            gym = GymCodec.decode(snapshot.data)
            if gym is not None:
                gyms.append(gym)
        return gyms

    async def get_many_as_map(self, gym_ids: Iterable[str]) -> Dict[str, Gym]:
        """Resolve gyms in "in" chunks of 10; unresolvable ids are absent."""
        result: Dict[str, Gym] = {}
        for snapshot in await fetch_where_in(self._store, GYMS, "id", gym_ids):
            gym = GymCodec.decode(snapshot.data)
            if gym is not None:
                result[gym.id] = gym
        return result

    # ============================================================
    # Favourites
    # ============================================================

    async def add_favorite(self, user_id: str, gym_id: str) -> GymFavorite:
        favorite = GymFavorite(user_id=user_id, gym_id=gym_id)
        await self._store.set(USER_FAVORITES, favorite.id, GymFavoriteCodec.encode(favorite))
        return favorite

    async def remove_favorite(self, user_id: str, gym_id: str) -> None:
        await self._store.delete(USER_FAVORITES, GymFavorite(user_id=user_id, gym_id=gym_id).id)

    async def is_favorite(self, user_id: str, gym_id: str) -> bool:
        favorite_id = GymFavorite(user_id=user_id, gym_id=gym_id).id
        return await self._store.get(USER_FAVORITES, favorite_id) is not None

    async def get_favorites(self, user_id: str) -> List[Gym]:
        """Favourite gyms of a user, most recently added first."""
        snapshots = await self._store.query(
            Query(USER_FAVORITES).where("userId", "==", user_id).order("createdAt", descending=True)
        )
        favorites = [GymFavoriteCodec.decode(s.data) for s in snapshots]
        gym_ids = [f.gym_id for f in favorites if f is not None]
        gyms = await self.get_many_as_map(gym_ids)
        return [gyms[gid] for gid in gym_ids if gid in gyms]
