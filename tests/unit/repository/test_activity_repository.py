"""
Unit tests for ActivityRepository.

Runs against InMemoryDocumentStore; ordering-sensitive tests seed
documents with explicit createdAt values through the add_post fixture.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List

import pytest

from cruxfeed.domain.activity.models import (
    ActivityType,
    BasicPost,
    Comment,
    EventPost,
    GroupVisit,
    PageCursor,
    VisitStatus,
)
from cruxfeed.domain.gym.models import Gym
from cruxfeed.domain.shared.errors import (
    ActivityNotFoundError,
    InvalidStateError,
    UnauthenticatedError,
    ValidationError,
)
from cruxfeed.domain.shared.ports.auth import StaticUserProvider
from cruxfeed.domain.user.models import User
from cruxfeed.infrastructure.persistence.in_memory import InMemoryDocumentStore
from cruxfeed.repository import (
    ActivityRepository,
    CommentRepository,
    RelationshipRepository,
    UserRepository,
)
from cruxfeed.repository.activity_repository import BATCH_WRITE_LIMIT
from cruxfeed.repository.collections import ACTIVITY_ITEMS, comments_of, likes_of

from conftest import YieldingDocumentStore

AddUser = Callable[..., Awaitable[User]]
AddGym = Callable[..., Awaitable[Gym]]
AddPost = Callable[..., Awaitable[BasicPost]]

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def ids(items: List) -> List[str]:
    return [item.id for item in items]


# ═══════════════════════════════════════════════════════════
# CREATE
# ═══════════════════════════════════════════════════════════


class TestCreate:
    """Creation and postCount bookkeeping."""

    @pytest.mark.asyncio
    async def test_post_variants_increment_post_count(
        self,
        activities: ActivityRepository,
        users: UserRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        gym = await add_gym("gym_1")

        await activities.create_basic_post(alice, "First session back")
        await activities.create_beta_post(alice, "Drop knee on the arete", gym)
        await activities.create_event_post(alice, "Comp night", at(60 * 24), "Main wall")

        assert (await users.get("alice")).post_count == 3

    @pytest.mark.asyncio
    async def test_visit_does_not_count_as_post(
        self,
        activities: ActivityRepository,
        users: UserRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        gym = await add_gym("gym_1")

        visit = await activities.create_visit(alice, gym, at(120), duration=7200)

        assert visit.attendees == ("alice",)
        assert visit.status is VisitStatus.PLANNED
        assert (await users.get("alice")).post_count == 0
        assert isinstance(await activities.get(visit.id), GroupVisit)

    @pytest.mark.asyncio
    async def test_event_without_gym_round_trips(
        self, activities: ActivityRepository, add_user: AddUser
    ) -> None:
        alice = await add_user("alice")

        event = await activities.create_event_post(
            alice, "Outdoor meet", at(60), "Stanage", max_attendees=12
        )
        fetched = await activities.get(event.id)

        assert isinstance(fetched, EventPost)
        assert fetched.gym is None
        assert fetched.max_attendees == 12


# ═══════════════════════════════════════════════════════════
# RECONSTRUCTION
# ═══════════════════════════════════════════════════════════


class TestReconstruction:
    """Documents that cannot be fully resolved are left out of fetches."""

    @pytest.mark.asyncio
    async def test_beta_with_missing_gym_is_dropped(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        gym = await add_gym("gym_1")
        kept = await activities.create_basic_post(alice, "still here")
        beta = await activities.create_beta_post(alice, "gone with the gym", gym)
        await store.delete("gyms", "gym_1")

        assert ids(await activities.fetch_all()) == [kept.id]
        with pytest.raises(ActivityNotFoundError):
            await activities.get(beta.id)

    @pytest.mark.asyncio
    async def test_unresolvable_author_and_unknown_type_are_dropped(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        post = await add_post(alice, "ok", at(0))
        await store.set(
            ACTIVITY_ITEMS,
            "orphan",
            {"id": "orphan", "type": "basic", "authorId": "ghost", "content": "x", "createdAt": at(1)},
        )
        await store.set(
            ACTIVITY_ITEMS,
            "weird",
            {"id": "weird", "type": "poll", "authorId": "alice", "createdAt": at(2)},
        )

        assert ids(await activities.fetch_all()) == [post.id]

    @pytest.mark.asyncio
    async def test_event_with_dangling_gym_is_dropped(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
    ) -> None:
        await add_user("alice")
        await store.set(
            ACTIVITY_ITEMS,
            "e1",
            {
                "id": "e1",
                "type": "event",
                "authorId": "alice",
                "gymId": "ghost_gym",
                "title": "Comp",
                "eventDate": at(60),
                "location": "Hall",
                "createdAt": at(0),
            },
        )

        assert await activities.fetch_all() == []

    @pytest.mark.asyncio
    async def test_missing_id_field_falls_back_to_document_id(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
    ) -> None:
        await add_user("alice")
        await store.set(
            ACTIVITY_ITEMS,
            "doc_7",
            {"type": "basic", "authorId": "alice", "content": "legacy", "createdAt": at(0)},
        )

        item = await activities.get("doc_7")

        assert item.id == "doc_7"

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, activities: ActivityRepository) -> None:
        with pytest.raises(ActivityNotFoundError):
            await activities.get("ghost")


# ═══════════════════════════════════════════════════════════
# FETCH
# ═══════════════════════════════════════════════════════════


class TestFetch:
    @pytest.mark.asyncio
    async def test_filters(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        bob = await add_user("bob")
        gym = await add_gym("gym_1")
        basic = await activities.create_basic_post(alice, "hello", is_featured=True)
        beta = await activities.create_beta_post(bob, "sit start", gym, is_featured=True)
        visit = await activities.create_visit(bob, gym, at(60), duration=3600)

        assert ids(await activities.fetch_by_author("alice")) == [basic.id]
        assert sorted(ids(await activities.fetch_by_gym("gym_1"))) == sorted([beta.id, visit.id])
        assert sorted(ids(await activities.fetch_featured())) == sorted([basic.id, beta.id])
        assert ids(await activities.fetch_featured_by_type(ActivityType.BETA)) == [beta.id]

    @pytest.mark.asyncio
    async def test_fetch_by_authors_merges_chunks_newest_first(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        authors = [await add_user(f"climber_{i:02d}") for i in range(12)]
        for minute, author in enumerate(authors):
            await add_post(author, f"post {minute}", at(minute), item_id=f"p{minute:02d}")

        items = await activities.fetch_by_authors(a.id for a in authors)

        assert ids(items) == [f"p{m:02d}" for m in reversed(range(12))]

    @pytest.mark.asyncio
    async def test_following_feed_includes_own_items(
        self,
        activities: ActivityRepository,
        relationships: RelationshipRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        bob = await add_user("bob")
        carol = await add_user("carol")
        await relationships.follow("alice", "bob")
        await add_post(alice, "mine", at(0), item_id="a")
        await add_post(bob, "followed", at(1), item_id="b")
        await add_post(carol, "stranger", at(2), item_id="c")

        assert ids(await activities.fetch_following_feed("alice")) == ["b", "a"]

    @pytest.mark.asyncio
    async def test_fetch_visits_between(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        gym = await add_gym("gym_1")
        early = await activities.create_visit(alice, gym, at(60), duration=3600)
        late = await activities.create_visit(alice, gym, at(180), duration=3600)
        await activities.create_visit(alice, gym, at(60 * 24), duration=3600)

        visits = await activities.fetch_visits_between(["alice"], at(0), at(60 * 12))

        assert ids(visits) == [early.id, late.id]


# ═══════════════════════════════════════════════════════════
# PAGINATION
# ═══════════════════════════════════════════════════════════


class TestPagination:
    @pytest.mark.asyncio
    async def test_pages_chain_without_gaps_or_duplicates(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        for minute in range(5):
            await add_post(alice, f"post {minute}", at(minute), item_id=f"p{minute}")

        seen: List[str] = []
        cursor = None
        pages = 0
        while True:
            page = await activities.fetch_paginated(page_size=2, cursor=cursor)
            seen.extend(ids(page.items))
            pages += 1
            cursor = page.cursor
            if not page.has_more:
                break

        assert seen == ["p4", "p3", "p2", "p1", "p0"]
        assert pages == 3

    @pytest.mark.asyncio
    async def test_page_size_defaults_to_env(
        self,
        monkeypatch: pytest.MonkeyPatch,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        monkeypatch.setenv("FEED_PAGE_SIZE", "2")
        alice = await add_user("alice")
        for minute in range(3):
            await add_post(alice, f"post {minute}", at(minute), item_id=f"p{minute}")

        page = await activities.fetch_paginated()
        by_author = await activities.fetch_paginated_by_author("alice")

        assert ids(page.items) == ["p2", "p1"]
        assert page.has_more is True
        assert ids(by_author.items) == ["p2", "p1"]

    @pytest.mark.asyncio
    async def test_exact_multiple_reports_no_more(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        await add_post(alice, "one", at(0), item_id="p0")
        await add_post(alice, "two", at(1), item_id="p1")

        page = await activities.fetch_paginated(page_size=2)

        assert ids(page.items) == ["p1", "p0"]
        assert page.has_more is False
        assert page.cursor == PageCursor(created_at=at(0), item_id="p0")

    @pytest.mark.asyncio
    async def test_cursor_advances_past_dropped_document(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        await add_post(alice, "oldest", at(0), item_id="p0")
        await store.set(
            ACTIVITY_ITEMS,
            "orphan",
            {"id": "orphan", "type": "basic", "authorId": "ghost", "content": "x", "createdAt": at(1)},
        )
        await add_post(alice, "newest", at(2), item_id="p2")

        first = await activities.fetch_paginated(page_size=2)
        second = await activities.fetch_paginated(page_size=2, cursor=first.cursor)

        assert ids(first.items) == ["p2"]
        assert first.has_more is True
        assert first.cursor is not None
        assert first.cursor.item_id == "orphan"
        assert ids(second.items) == ["p0"]
        assert second.has_more is False

    @pytest.mark.asyncio
    async def test_invalid_page_size(self, activities: ActivityRepository) -> None:
        with pytest.raises(ValidationError):
            await activities.fetch_paginated(page_size=0)
        with pytest.raises(ValidationError):
            await activities.fetch_paginated_by_authors([], page_size=0)

    @pytest.mark.asyncio
    async def test_by_author_and_by_authors(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        bob = await add_user("bob")
        await add_post(alice, "a", at(0), item_id="a0")
        await add_post(bob, "b", at(1), item_id="b1")
        await add_post(alice, "a", at(2), item_id="a2")

        by_author = await activities.fetch_paginated_by_author("alice", page_size=5)
        by_authors = await activities.fetch_paginated_by_authors(["bob", "alice"], page_size=2)
        none = await activities.fetch_paginated_by_authors([], page_size=2)

        assert ids(by_author.items) == ["a2", "a0"]
        assert ids(by_authors.items) == ["a2", "b1"]
        assert by_authors.has_more is True
        assert none.items == []
        assert none.has_more is False


# ═══════════════════════════════════════════════════════════
# LIKES
# ═══════════════════════════════════════════════════════════


class TestLikes:
    @pytest.mark.asyncio
    async def test_like_is_idempotent(
        self, activities: ActivityRepository, add_user: AddUser
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "send!")

        assert await activities.like(post.id, "bob") is True
        assert await activities.like(post.id, "bob") is False

        assert (await activities.get(post.id)).like_count == 1
        assert await activities.is_liked_by(post.id, "bob")

    @pytest.mark.asyncio
    async def test_unlike_without_like_is_noop(
        self, activities: ActivityRepository, add_user: AddUser
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "send!")

        assert await activities.unlike(post.id, "bob") is False
        assert (await activities.get(post.id)).like_count == 0

    @pytest.mark.asyncio
    async def test_like_count_never_negative(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "send!")
        await store.set(likes_of(post.id), "bob", {"userId": "bob"})

        assert await activities.unlike(post.id, "bob") is True
        assert (await activities.get(post.id)).like_count == 0

    @pytest.mark.asyncio
    async def test_unauthenticated_writes_nothing(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        auth: StaticUserProvider,
        add_user: AddUser,
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "send!")
        await activities.like(post.id, "carol")
        auth.sign_out()

        with pytest.raises(UnauthenticatedError):
            await activities.like(post.id, "bob")
        with pytest.raises(UnauthenticatedError):
            await activities.unlike(post.id, "carol")

        assert store.count(likes_of(post.id)) == 1
        assert (await activities.get(post.id)).like_count == 1

    @pytest.mark.asyncio
    async def test_like_missing_item(
        self, store: InMemoryDocumentStore, activities: ActivityRepository
    ) -> None:
        with pytest.raises(ActivityNotFoundError):
            await activities.like("ghost", "bob")

        assert store.count(likes_of("ghost")) == 0

    @pytest.mark.asyncio
    async def test_liked_item_ids(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_post: AddPost,
    ) -> None:
        alice = await add_user("alice")
        first = await add_post(alice, "one", at(0), item_id="p0")
        second = await add_post(alice, "two", at(1), item_id="p1")
        await activities.like(second.id, "bob")

        assert await activities.get_user_liked_item_ids("bob") == ["p1"]
        assert await activities.get_user_liked_item_ids("bob", [first.id, second.id]) == ["p1"]
        assert await activities.get_user_liked_item_ids("carol") == []


# ═══════════════════════════════════════════════════════════
# DELETE
# ═══════════════════════════════════════════════════════════


class TestConcurrentLikes:
    """Duplicate likes/unlikes racing each other move likeCount once."""

    @pytest.fixture
    def store(self) -> YieldingDocumentStore:
        return YieldingDocumentStore()

    @pytest.mark.asyncio
    async def test_racing_likes_count_once(
        self,
        store: YieldingDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "send!")

        results = await asyncio.gather(
            activities.like(post.id, "bob"), activities.like(post.id, "bob")
        )

        assert sorted(results) == [False, True]
        assert store.count(likes_of(post.id)) == 1
        assert (await activities.get(post.id)).like_count == 1

    @pytest.mark.asyncio
    async def test_racing_unlikes_count_once(
        self,
        store: YieldingDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "send!")
        await activities.like(post.id, "bob")
        await activities.like(post.id, "carol")

        results = await asyncio.gather(
            activities.unlike(post.id, "bob"), activities.unlike(post.id, "bob")
        )

        assert sorted(results) == [False, True]
        assert store.count(likes_of(post.id)) == 1
        assert (await activities.get(post.id)).like_count == 1


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_cascades_and_decrements_post_count(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        comments: CommentRepository,
        users: UserRepository,
        add_user: AddUser,
    ) -> None:
        alice = await add_user("alice")
        bob = await add_user("bob")
        post = await activities.create_basic_post(alice, "delete me")
        await activities.like(post.id, "bob")
        await comments.add(post.id, Comment(author=bob, content="nice"))

        await activities.delete_item(post.id)

        assert await store.get(ACTIVITY_ITEMS, post.id) is None
        assert store.count(likes_of(post.id)) == 0
        assert store.count(comments_of(post.id)) == 0
        assert (await users.get("alice")).post_count == 0

    @pytest.mark.asyncio
    async def test_delete_visit_keeps_post_count(
        self,
        activities: ActivityRepository,
        users: UserRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice", post_count=4)
        visit = await activities.create_visit(alice, await add_gym("gym_1"), at(60), 3600)

        await activities.delete_item(visit.id)

        assert (await users.get("alice")).post_count == 4

    @pytest.mark.asyncio
    async def test_delete_more_sub_records_than_one_batch(
        self,
        store: InMemoryDocumentStore,
        activities: ActivityRepository,
        add_user: AddUser,
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "viral")
        for i in range(BATCH_WRITE_LIMIT + 5):
            await store.set(likes_of(post.id), f"u{i}", {"userId": f"u{i}"})

        await activities.delete_item(post.id)

        assert store.count(likes_of(post.id)) == 0
        assert await store.get(ACTIVITY_ITEMS, post.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing(self, activities: ActivityRepository) -> None:
        with pytest.raises(ActivityNotFoundError):
            await activities.delete_item("ghost")

    @pytest.mark.asyncio
    async def test_delete_without_author_is_invalid(
        self, store: InMemoryDocumentStore, activities: ActivityRepository
    ) -> None:
        await store.set(ACTIVITY_ITEMS, "broken", {"id": "broken", "type": "basic"})

        with pytest.raises(InvalidStateError):
            await activities.delete_item("broken")

        assert await store.get(ACTIVITY_ITEMS, "broken") is not None


# ═══════════════════════════════════════════════════════════
# VISITS
# ═══════════════════════════════════════════════════════════


class TestVisits:
    @pytest.mark.asyncio
    async def test_join_and_leave(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        visit = await activities.create_visit(alice, await add_gym("gym_1"), at(60), 3600)

        assert await activities.join_visit(visit.id, "bob") is True
        assert await activities.join_visit(visit.id, "bob") is False
        joined = await activities.get(visit.id)
        assert isinstance(joined, GroupVisit)
        assert joined.attendees == ("alice", "bob")

        assert await activities.leave_visit(visit.id, "alice") is True
        assert await activities.leave_visit(visit.id, "carol") is False
        left = await activities.get(visit.id)
        assert isinstance(left, GroupVisit)
        assert left.attendees == ("bob",)

    @pytest.mark.asyncio
    async def test_join_non_visit(
        self, activities: ActivityRepository, add_user: AddUser
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "not a visit")

        with pytest.raises(InvalidStateError):
            await activities.join_visit(post.id, "bob")
        with pytest.raises(InvalidStateError):
            await activities.update_visit_status(post.id, VisitStatus.ONGOING)

    @pytest.mark.asyncio
    async def test_unreadable_attendees(
        self, store: InMemoryDocumentStore, activities: ActivityRepository
    ) -> None:
        await store.set(
            ACTIVITY_ITEMS, "v1", {"id": "v1", "type": "visit", "attendees": "alice"}
        )

        with pytest.raises(InvalidStateError):
            await activities.leave_visit("v1", "alice")

    @pytest.mark.asyncio
    async def test_missing_visit(self, activities: ActivityRepository) -> None:
        with pytest.raises(ActivityNotFoundError):
            await activities.join_visit("ghost", "bob")

    @pytest.mark.asyncio
    async def test_status_transitions_are_not_enforced(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        visit = await activities.create_visit(alice, await add_gym("gym_1"), at(60), 3600)

        await activities.update_visit_status(visit.id, VisitStatus.COMPLETED)
        await activities.update_visit_status(visit.id, VisitStatus.PLANNED)

        fetched = await activities.get(visit.id)
        assert isinstance(fetched, GroupVisit)
        assert fetched.status is VisitStatus.PLANNED


# ═══════════════════════════════════════════════════════════
# FLAGS, COUNTERS AND SEARCH
# ═══════════════════════════════════════════════════════════


class TestFlagsAndCounters:
    @pytest.mark.asyncio
    async def test_toggle_featured(
        self, activities: ActivityRepository, add_user: AddUser
    ) -> None:
        post = await activities.create_basic_post(await add_user("alice"), "hi")

        await activities.toggle_featured(post.id, True)

        assert (await activities.get(post.id)).is_featured is True
        with pytest.raises(ActivityNotFoundError):
            await activities.toggle_featured("ghost", True)

    @pytest.mark.asyncio
    async def test_view_count_only_for_beta(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        beta = await activities.create_beta_post(alice, "toe hook", await add_gym("gym_1"))
        post = await activities.create_basic_post(alice, "hi")

        await activities.increment_view_count(beta.id)
        await activities.increment_view_count(beta.id)

        assert (await activities.get(beta.id)).view_count == 2  # type: ignore[union-attr]
        with pytest.raises(InvalidStateError):
            await activities.increment_view_count(post.id)


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_by_text(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        gym = await add_gym("gym_1", name="The Foundry")
        slab = await activities.create_basic_post(alice, "Slab day")
        beta = await activities.create_beta_post(alice, "Crimpy start", gym)
        event = await activities.create_event_post(alice, "SLAB masters", at(60), "Main hall")

        assert sorted(ids(await activities.search_by_text("slab"))) == sorted([slab.id, event.id])
        assert ids(await activities.search_by_text("foundry")) == [beta.id]
        assert await activities.search_by_text("  ") == []

    @pytest.mark.asyncio
    async def test_search_by_tag(
        self,
        activities: ActivityRepository,
        add_user: AddUser,
        add_gym: AddGym,
    ) -> None:
        alice = await add_user("alice")
        gym = await add_gym("gym_1")
        await activities.create_basic_post(alice, "plain")
        beta = await activities.create_beta_post(alice, "beta", gym)
        visit = await activities.create_visit(alice, gym, at(60), 3600)

        assert ids(await activities.search_by_tag("Beta")) == [beta.id]
        assert ids(await activities.search_by_tag("visit")) == [visit.id]
        assert await activities.search_by_tag("basic") == []
        assert await activities.search_by_tag("poll") == []
