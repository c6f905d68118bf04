"""Unit tests for GymVisitRepository (per-day rosters)."""

from datetime import datetime, timezone
from typing import Awaitable, Callable

import pytest
from freezegun import freeze_time

from cruxfeed.domain.gym.models import Gym
from cruxfeed.domain.user.models import User
from cruxfeed.infrastructure.persistence.in_memory import InMemoryDocumentStore
from cruxfeed.repository import GymVisitRepository, RelationshipRepository
from cruxfeed.repository.collections import GYM_VISITS

AddUser = Callable[..., Awaitable[User]]
AddGym = Callable[..., Awaitable[Gym]]

TODAY = "2025-03-01 09:00:00"
MORNING = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
EVENING = datetime(2025, 3, 1, 19, 30, tzinfo=timezone.utc)
TOMORROW = datetime(2025, 3, 2, 10, 0, tzinfo=timezone.utc)


class TestRoster:
    @pytest.mark.asyncio
    async def test_add_visitor_is_idempotent_per_day(
        self, store: InMemoryDocumentStore, gym_visits: GymVisitRepository
    ) -> None:
        assert await gym_visits.add_visitor("gym_1", "alice", MORNING) is True
        assert await gym_visits.add_visitor("gym_1", "alice", EVENING) is False
        assert await gym_visits.add_visitor("gym_1", "bob", EVENING, visit_id="v1") is True
        assert await gym_visits.add_visitor("gym_1", "alice", TOMORROW) is True

        record = await gym_visits.get_record("gym_1", MORNING)

        assert record is not None
        assert record.id == "gym_1_20250301"
        assert [v.user_id for v in record.visitors] == ["alice", "bob"]
        assert record.visitors[1].visit_id == "v1"
        assert store.count(GYM_VISITS) == 2

    @pytest.mark.asyncio
    async def test_removing_last_visitor_deletes_roster(
        self, store: InMemoryDocumentStore, gym_visits: GymVisitRepository
    ) -> None:
        await gym_visits.add_visitor("gym_1", "alice", MORNING)
        await gym_visits.add_visitor("gym_1", "bob", MORNING)

        assert await gym_visits.remove_visitor("gym_1", "alice", MORNING) is True
        assert await gym_visits.remove_visitor("gym_1", "alice", MORNING) is False
        remaining = await gym_visits.get_record("gym_1", MORNING)
        assert remaining is not None
        assert [v.user_id for v in remaining.visitors] == ["bob"]

        assert await gym_visits.remove_visitor("gym_1", "bob", MORNING) is True
        assert await gym_visits.get_record("gym_1", MORNING) is None
        assert store.count(GYM_VISITS) == 0

    @pytest.mark.asyncio
    async def test_remove_from_missing_roster(self, gym_visits: GymVisitRepository) -> None:
        assert await gym_visits.remove_visitor("gym_1", "alice", MORNING) is False


class TestToday:
    @pytest.mark.asyncio
    async def test_visitors_today(
        self, gym_visits: GymVisitRepository, add_user: AddUser
    ) -> None:
        await add_user("alice")
        with freeze_time(TODAY, real_asyncio=True):
            await gym_visits.add_visitor("gym_1", "alice", MORNING, visit_id="v1")
            await gym_visits.add_visitor("gym_1", "ghost", MORNING)
            await gym_visits.add_visitor("gym_1", "alice", TOMORROW)

            visitors = await gym_visits.visitors_today("gym_1")

        assert [(v.user.id, v.visit_id, v.visit_date) for v in visitors] == [
            ("alice", "v1", MORNING)
        ]

    @pytest.mark.asyncio
    async def test_friends_visiting_today_busiest_first(
        self,
        gym_visits: GymVisitRepository,
        relationships: RelationshipRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        for user_id in ("alice", "bob", "carol", "dave"):
            await add_user(user_id)
        await add_gym("quiet")
        await add_gym("busy")
        await relationships.follow("alice", "bob")
        await relationships.follow("alice", "carol")

        with freeze_time(TODAY, real_asyncio=True):
            await gym_visits.add_visitor("quiet", "bob", MORNING)
            await gym_visits.add_visitor("busy", "bob", EVENING)
            await gym_visits.add_visitor("busy", "carol", EVENING)
            await gym_visits.add_visitor("busy", "dave", EVENING)
            await gym_visits.add_visitor("gone_gym", "carol", MORNING)
            await gym_visits.add_visitor("quiet", "carol", TOMORROW)

            visits = await gym_visits.friends_visiting_today("alice")

        assert [v.gym.id for v in visits] == ["busy", "quiet"]
        assert [a.user.id for a in visits[0].attendees] == ["bob", "carol"]
        assert [a.user.id for a in visits[1].attendees] == ["bob"]

    @pytest.mark.asyncio
    async def test_friends_visiting_today_without_follows(
        self, gym_visits: GymVisitRepository
    ) -> None:
        with freeze_time(TODAY, real_asyncio=True):
            await gym_visits.add_visitor("gym_1", "bob", MORNING)

            assert await gym_visits.friends_visiting_today("alice") == []
