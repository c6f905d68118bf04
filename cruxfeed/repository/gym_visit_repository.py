"""
Gym visit repository.

Per-day visitor rosters in "gymVisits", one document per (gym, UTC day)
with id "{gymId}_{yyyyMMdd}".

add_visitor/remove_visitor are read-check-write sequences without a
transaction. Two users joining the same empty roster concurrently both
take the create path and one overwrites the other; the roster is an
advisory view, so this bound is accepted and documented rather than
hidden.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from cruxfeed.domain.gym.codec import GymVisitRecordCodec
from cruxfeed.domain.gym.models import GymVisit, GymVisitRecord, UserVisit, VisitorRecord
from cruxfeed.domain.shared.clock import start_of_day, utc_now
from cruxfeed.domain.shared.ids import new_id
from cruxfeed.domain.shared.ports.document_store import ArrayUnion, IDocumentStore, Query
from cruxfeed.repository.collections import GYM_VISITS
from cruxfeed.repository.gym_repository import GymRepository
from cruxfeed.repository.relationship_repository import RelationshipRepository
from cruxfeed.repository.user_repository import UserRepository

logger = structlog.get_logger(__name__)


class GymVisitRepository:
    """
    Who is visiting which gym on a given day.

    Example:
        >>> await visits.add_visitor("gym_1", "u1", visit_time)
        True
        >>> await visits.add_visitor("gym_1", "u1", visit_time)
        False
    """

    def __init__(
        self,
        store: IDocumentStore,
        users: UserRepository,
        gyms: GymRepository,
        relationships: RelationshipRepository,
    ) -> None:
        self._store = store
        self._users = users
        self._gyms = gyms
        self._relationships = relationships

    async def get_record(self, gym_id: str, day: datetime) -> Optional[GymVisitRecord]:
        snapshot = await self._store.get(GYM_VISITS, GymVisitRecord.record_id(gym_id, day))
        if snapshot is None:
            return None
        return GymVisitRecordCodec.decode(snapshot.data)

    async def add_visitor(
        self,
        gym_id: str,
        user_id: str,
        visit_time: datetime,
        visit_id: Optional[str] = None,
    ) -> bool:
        """
        Put a user on the roster of the visit_time's day.

        Returns:
            False when the user was already on that roster
        """
        day = start_of_day(visit_time)
        record_id = GymVisitRecord.record_id(gym_id, day)
        visitor = VisitorRecord(user_id=user_id, visit_time=visit_time, visit_id=visit_id)

        snapshot = await self._store.get(GYM_VISITS, record_id)
        if snapshot is None:
            record = GymVisitRecord(id=record_id, gym_id=gym_id, date=day, visitors=(visitor,))
            await self._store.set(GYM_VISITS, record_id, GymVisitRecordCodec.encode(record))
            logger.info("Gym roster created", gym_id=gym_id, record_id=record_id, user_id=user_id)
            return True

        existing = GymVisitRecordCodec.decode(snapshot.data)
        if existing is not None and existing.has_visitor(user_id):
            return False

        await self._store.update(
            GYM_VISITS,
            record_id,
            {"visitors": ArrayUnion((GymVisitRecordCodec.encode_visitor(visitor),))},
        )
        return True

    async def remove_visitor(self, gym_id: str, user_id: str, day: datetime) -> bool:
        """
        Take a user off a day's roster; the roster is deleted once empty.

        Returns:
            False when the user was not on the roster
        """
        record = await self.get_record(gym_id, day)
        if record is None or not record.has_visitor(user_id):
            return False

        remaining = record.without(user_id)
        if not remaining.visitors:
            await self._store.delete(GYM_VISITS, record.id)
            logger.info("Gym roster deleted", gym_id=gym_id, record_id=record.id)
            return True

        await self._store.update(
            GYM_VISITS,
            record.id,
            {"visitors": [GymVisitRecordCodec.encode_visitor(v) for v in remaining.visitors]},
        )
        return True

    async def visitors_today(self, gym_id: str) -> List[UserVisit]:
        """Resolved visitors of a gym for the current UTC day."""
        record = await self.get_record(gym_id, utc_now())
        if record is None:
            return []
        users = await self._users.get_many_as_map(v.user_id for v in record.visitors)
        return [
            UserVisit(visit_id=v.visit_id or new_id(), user=users[v.user_id], visit_date=v.visit_time)
            for v in record.visitors
            if v.user_id in users
        ]

    async def friends_visiting_today(self, user_id: str) -> List[GymVisit]:
        """
        Gyms that followed users plan to visit today.

        Scans every roster of the day and filters visitors to the follow
        set in memory, then resolves gyms and users in batches. Sorted by
        number of attendees, busiest gym first.
        """
        following = set(await self._relationships.get_following_ids(user_id))
        if not following:
            return []

        snapshots = await self._store.query(
            Query(GYM_VISITS).where("date", "==", start_of_day())
        )

        friends_by_gym: Dict[str, List[VisitorRecord]] = defaultdict(list)
        for snapshot in snapshots:
            record = GymVisitRecordCodec.decode(snapshot.data)
            if record is None:
                logger.info("Skipping malformed gym roster", record_id=snapshot.id)
                continue
            friends = [v for v in record.visitors if v.user_id in following]
            if friends:
                friends_by_gym[record.gym_id].extend(friends)

        if not friends_by_gym:
            return []

        gyms = await self._gyms.get_many_as_map(friends_by_gym)
        users = await self._users.get_many_as_map(
            v.user_id for visitors in friends_by_gym.values() for v in visitors
        )

        result: List[GymVisit] = []
        for gym_id, visitors in friends_by_gym.items():
            gym = gyms.get(gym_id)
            if gym is None:
                logger.info("Skipping roster of unresolvable gym", gym_id=gym_id)
                continue
            attendees = [
                UserVisit(
                    visit_id=v.visit_id or new_id(),
                    user=users[v.user_id],
                    visit_date=v.visit_time,
                )
                for v in visitors
                if v.user_id in users
            ]
            if attendees:
                result.append(GymVisit(gym=gym, attendees=attendees, is_favourite=False))

        result.sort(key=lambda visit: len(visit.attendees), reverse=True)
        return result
