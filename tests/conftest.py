"""
Shared fixtures for cruxfeed tests.

Repositories are wired against a fresh InMemoryDocumentStore per test.
Seeding helpers are exposed as fixtures returning async callables so
tests stay in pytest-asyncio strict mode without async fixtures.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Set

import pytest

from cruxfeed.domain.activity.models import BasicPost
from cruxfeed.domain.gym.models import ClimbingType, Gym
from cruxfeed.domain.shared.errors import StoreError
from cruxfeed.domain.shared.ports.auth import StaticUserProvider
from cruxfeed.domain.shared.ports.document_store import DocumentSnapshot
from cruxfeed.domain.user.models import User
from cruxfeed.feed.composer import FeedComposer
from cruxfeed.infrastructure.persistence.in_memory import InMemoryDocumentStore
from cruxfeed.infrastructure.storage import InMemoryBlobStorage
from cruxfeed.repository import (
    ActivityRepository,
    CommentRepository,
    GymRepository,
    GymVisitRepository,
    MediaRepository,
    MessageRepository,
    NotificationRepository,
    PermissionsRepository,
    RelationshipRepository,
    UserRepository,
)
from cruxfeed.repository.collections import ACTIVITY_ITEMS
from cruxfeed.domain.activity.codec import ActivityCodec


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


def make_user(user_id: str = "user_1", **overrides: Any) -> User:
    fields: dict = {
        "id": user_id,
        "email": f"{user_id}@example.com",
        "first_name": user_id.capitalize(),
        "last_name": "Climber",
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return User(**fields)


def make_gym(gym_id: str = "gym_1", **overrides: Any) -> Gym:
    fields: dict = {
        "id": gym_id,
        "name": f"Gym {gym_id}",
        "email": f"{gym_id}@gyms.example.com",
        "location": "Sheffield",
        "climbing_types": frozenset({ClimbingType.BOULDERING, ClimbingType.LEAD}),
        "amenities": ("cafe", "showers"),
        "created_at": datetime(2024, 6, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Gym(**fields)


@pytest.fixture
def sample_user() -> User:
    """Sample climber."""
    return make_user("user_1", bio="Crimps for breakfast", post_count=3)


@pytest.fixture
def sample_gym() -> Gym:
    """Sample bouldering/lead gym."""
    return make_gym("gym_1")


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE FIXTURES
# ═══════════════════════════════════════════════════════════


class YieldingDocumentStore(InMemoryDocumentStore):
    """Suspends after every read, so gathered callers interleave between read and write."""

    async def get(self, path: str, doc_id: str) -> Optional[DocumentSnapshot]:
        snapshot = await super().get(path, doc_id)
        await asyncio.sleep(0)
        return snapshot


class FlakyDocumentStore(InMemoryDocumentStore):
    """Raises StoreError when reading any id in failing_ids."""

    def __init__(self) -> None:
        super().__init__()
        self.failing_ids: Set[str] = set()

    async def get(self, path: str, doc_id: str) -> Optional[DocumentSnapshot]:
        if doc_id in self.failing_ids:
            raise StoreError(f"Read of {path}/{doc_id} failed: connection reset")
        return await super().get(path, doc_id)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Fresh in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def blob_storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage(bucket="media")


@pytest.fixture
def auth() -> StaticUserProvider:
    """Signed in as user_1 unless a test signs out."""
    return StaticUserProvider("user_1")


# ═══════════════════════════════════════════════════════════
# REPOSITORY FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def users(store: InMemoryDocumentStore) -> UserRepository:
    return UserRepository(store)


@pytest.fixture
def gyms(store: InMemoryDocumentStore) -> GymRepository:
    return GymRepository(store)


@pytest.fixture
def relationships(store: InMemoryDocumentStore, users: UserRepository) -> RelationshipRepository:
    return RelationshipRepository(store, users)


@pytest.fixture
def activities(
    store: InMemoryDocumentStore,
    users: UserRepository,
    gyms: GymRepository,
    relationships: RelationshipRepository,
    auth: StaticUserProvider,
) -> ActivityRepository:
    return ActivityRepository(store, users, gyms, relationships, auth)


@pytest.fixture
def comments(store: InMemoryDocumentStore, users: UserRepository) -> CommentRepository:
    return CommentRepository(store, users)


@pytest.fixture
def gym_visits(
    store: InMemoryDocumentStore,
    users: UserRepository,
    gyms: GymRepository,
    relationships: RelationshipRepository,
) -> GymVisitRepository:
    return GymVisitRepository(store, users, gyms, relationships)


@pytest.fixture
def permissions(store: InMemoryDocumentStore) -> PermissionsRepository:
    return PermissionsRepository(store)


@pytest.fixture
def notifications(store: InMemoryDocumentStore) -> NotificationRepository:
    return NotificationRepository(store)


@pytest.fixture
def messages(store: InMemoryDocumentStore, users: UserRepository) -> MessageRepository:
    return MessageRepository(store, users)


@pytest.fixture
def media(blob_storage: InMemoryBlobStorage) -> MediaRepository:
    return MediaRepository(blob_storage)


@pytest.fixture
def composer(
    relationships: RelationshipRepository, activities: ActivityRepository
) -> FeedComposer:
    return FeedComposer(relationships, activities)


# ═══════════════════════════════════════════════════════════
# SEEDING HELPERS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def add_user(users: UserRepository) -> Callable[..., Awaitable[User]]:
    """Create and store a user: ``await add_user("u1", bio=...)``."""

    async def _add(user_id: str, **overrides: Any) -> User:
        return await users.create(make_user(user_id, **overrides))

    return _add


@pytest.fixture
def add_gym(gyms: GymRepository) -> Callable[..., Awaitable[Gym]]:
    async def _add(gym_id: str, **overrides: Any) -> Gym:
        return await gyms.create(make_gym(gym_id, **overrides))

    return _add


@pytest.fixture
def add_post(store: InMemoryDocumentStore) -> Callable[..., Awaitable[BasicPost]]:
    """
    Store a basic post document directly with an explicit createdAt,
    bypassing postCount bookkeeping.
    """

    async def _add(
        author: User,
        content: str,
        created_at: datetime,
        item_id: Optional[str] = None,
    ) -> BasicPost:
        fields: dict = {"author": author, "content": content, "created_at": created_at}
        if item_id is not None:
            fields["id"] = item_id
        post = BasicPost(**fields)
        await store.set(ACTIVITY_ITEMS, post.id, ActivityCodec.encode(post))
        return post

    return _add
