"""
Activity repository.

Creates, reconstructs, paginates and mutates activity items.

Reconstruction policy (applies to every fetch):
- documents without a known ``type`` or ``authorId`` are dropped
- documents whose author cannot be resolved are dropped
- beta/visit documents whose gym cannot be resolved are dropped
- event documents without a gymId are kept (gym=None); an event whose
  gymId does not resolve is dropped
Dropped documents are logged; they never fail the surrounding fetch.

Consistency bounds: like/unlike commit the marker write and the counter
update in one batch whose precondition (marker absent for like, present
for unlike) is checked by the store at commit time, so concurrent
duplicate likes or unlikes move likeCount at most once. Comment
add/delete also commit with their counter update in one batch.
join/leave visit and the author's postCount adjustment are separate
writes: a concurrent writer may interleave and counters can drift, but
never below zero.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from cruxfeed.domain.activity.codec import (
    GYM_REQUIRED,
    ActivityCodec,
    read_author_id,
    read_gym_id,
    read_type,
)
from cruxfeed.domain.activity.models import (
    ActivityItem,
    ActivityType,
    BasicPost,
    BetaPost,
    EventPost,
    GroupVisit,
    Media,
    Page,
    PageCursor,
    VisitStatus,
)
from cruxfeed.domain.gym.models import Gym
from cruxfeed.domain.shared.clock import utc_now
from cruxfeed.domain.shared.errors import (
    ActivityNotFoundError,
    DocumentExistsError,
    DocumentNotFoundError,
    InvalidStateError,
    UnauthenticatedError,
    ValidationError,
)
from cruxfeed.domain.shared.ports.auth import ICurrentUserProvider
from cruxfeed.domain.shared.ports.document_store import (
    ArrayUnion,
    DocumentSnapshot,
    IDocumentStore,
    Increment,
    Query,
    sort_key,
)
from cruxfeed.domain.user.models import User
from cruxfeed.infrastructure.config import get_default_page_size
from cruxfeed.repository.collections import ACTIVITY_ITEMS, comments_of, likes_of
from cruxfeed.repository.gym_repository import GymRepository
from cruxfeed.repository.relationship_repository import RelationshipRepository
from cruxfeed.repository.scan import chunked, scan
from cruxfeed.repository.user_repository import UserRepository

logger = structlog.get_logger(__name__)

CREATED_AT = "createdAt"

# Upper bound of writes per cascade batch.
BATCH_WRITE_LIMIT = 500


def newest_first(snapshots: Iterable[DocumentSnapshot]) -> List[DocumentSnapshot]:
    """Order snapshots by (createdAt, id) descending."""
    return sorted(
        snapshots,
        key=lambda s: (sort_key(s.get(CREATED_AT)), s.id),
        reverse=True,
    )


def cursor_of(snapshot: DocumentSnapshot) -> PageCursor:
    created_at = snapshot.get(CREATED_AT)
    return PageCursor(
        created_at=created_at if isinstance(created_at, datetime) else None,
        item_id=snapshot.id,
    )


class ActivityRepository:
    """
    Activity items and their engagement sub-collections.

    Example:
        >>> repo = ActivityRepository(store, users, gyms, relationships, auth)
        >>> post = await repo.create_basic_post(author, "Sent my project!")
        >>> await repo.like(post.id, "u2")
        True
        >>> page = await repo.fetch_paginated(page_size=20)
    """

    def __init__(
        self,
        store: IDocumentStore,
        users: UserRepository,
        gyms: GymRepository,
        relationships: RelationshipRepository,
        auth: ICurrentUserProvider,
    ) -> None:
        self._store = store
        self._users = users
        self._gyms = gyms
        self._relationships = relationships
        self._auth = auth

    # ═══════════════════════════════════════════════════════════
    # CREATE
    # ═══════════════════════════════════════════════════════════

    async def _save_new(self, item: ActivityItem) -> ActivityItem:
        await self._store.set(ACTIVITY_ITEMS, item.id, ActivityCodec.encode(item))
        if item.activity_type.counts_as_post:
            await self._users.adjust_post_count(item.author.id, 1)
        logger.info(
            "Activity item created",
            item_id=item.id,
            type=item.type,
            author_id=item.author.id,
        )
        return item

    async def create_basic_post(
        self,
        author: User,
        content: str,
        media_items: Sequence[Media] = (),
        is_featured: bool = False,
    ) -> BasicPost:
        post = BasicPost(
            author=author,
            content=content,
            media_items=tuple(media_items),
            is_featured=is_featured,
        )
        await self._save_new(post)
        return post

    async def create_beta_post(
        self,
        author: User,
        content: str,
        gym: Gym,
        media_items: Sequence[Media] = (),
        is_featured: bool = False,
    ) -> BetaPost:
        post = BetaPost(
            author=author,
            content=content,
            gym=gym,
            media_items=tuple(media_items),
            is_featured=is_featured,
        )
        await self._save_new(post)
        return post

    async def create_event_post(
        self,
        author: User,
        title: str,
        event_date: datetime,
        location: str,
        description: Optional[str] = None,
        max_attendees: int = 10,
        gym: Optional[Gym] = None,
        media_items: Sequence[Media] = (),
        is_featured: bool = False,
    ) -> EventPost:
        post = EventPost(
            author=author,
            title=title,
            description=description,
            event_date=event_date,
            location=location,
            max_attendees=max_attendees,
            gym=gym,
            media_items=tuple(media_items),
            is_featured=is_featured,
        )
        await self._save_new(post)
        return post

    async def create_visit(
        self,
        author: User,
        gym: Gym,
        visit_date: datetime,
        duration: float,
        description: Optional[str] = None,
        is_featured: bool = False,
    ) -> GroupVisit:
        """
        Plan a group visit.

        The author is the first attendee; status starts as planned.
        Visits do not count towards the author's postCount.
        """
        visit = GroupVisit(
            author=author,
            gym=gym,
            visit_date=visit_date,
            duration=duration,
            description=description,
            attendees=(author.id,),
            status=VisitStatus.PLANNED,
            is_featured=is_featured,
        )
        await self._save_new(visit)
        return visit

    # ═══════════════════════════════════════════════════════════
    # RECONSTRUCTION
    # ═══════════════════════════════════════════════════════════

    async def reconstruct(self, snapshots: Sequence[DocumentSnapshot]) -> List[ActivityItem]:
        """
        Turn activity documents into items, preserving order.

        Authors and gyms are resolved in batches; see module docstring for
        the drop policy.
        """
        if not snapshots:
            return []

        author_ids = {aid for aid in (read_author_id(s.data) for s in snapshots) if aid}
        gym_ids = {gid for gid in (read_gym_id(s.data) for s in snapshots) if gid}
        authors = await self._users.get_many_as_map(author_ids)
        gyms = await self._gyms.get_many_as_map(gym_ids) if gym_ids else {}

        items: List[ActivityItem] = []
        for snapshot in snapshots:
            item = self._decode(snapshot, authors, gyms)
            if item is not None:
                items.append(item)
        return items

    def _decode(
        self,
        snapshot: DocumentSnapshot,
        authors: Dict[str, User],
        gyms: Dict[str, Gym],
    ) -> Optional[ActivityItem]:
        data = snapshot.data
        activity_type = read_type(data)
        if activity_type is None:
            return self._drop(snapshot, "unknown or missing type")

        author_id = read_author_id(data)
        author = authors.get(author_id) if author_id else None
        if author is None:
            return self._drop(snapshot, "author not resolvable", author_id=author_id)

        gym: Optional[Gym] = None
        if activity_type is not ActivityType.BASIC:
            gym_id = read_gym_id(data)
            gym = gyms.get(gym_id) if gym_id else None
            if gym is None and (activity_type in GYM_REQUIRED or gym_id is not None):
                return self._drop(snapshot, "gym not resolvable", gym_id=gym_id)

        if not data.get("id"):
            data = {**data, "id": snapshot.id}
        item = ActivityCodec.decode(data, author=author, gym=gym)
        if item is None:
            return self._drop(snapshot, "malformed document")
        return item

    @staticmethod
    def _drop(snapshot: DocumentSnapshot, reason: str, **context: Optional[str]) -> None:
        logger.info("Dropping activity item", item_id=snapshot.id, reason=reason, **context)
        return None

    async def _fetch(self, query: Query) -> List[ActivityItem]:
        return await self.reconstruct(await self._store.query(query))

    # ═══════════════════════════════════════════════════════════
    # FETCH
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _recent() -> Query:
        return Query(ACTIVITY_ITEMS).order(CREATED_AT, descending=True)

    async def get(self, item_id: str) -> ActivityItem:
        """
        Single item by id.

        Raises:
            ActivityNotFoundError: If absent or not reconstructible
        """
        snapshot = await self._store.get(ACTIVITY_ITEMS, item_id)
        items = await self.reconstruct([snapshot]) if snapshot is not None else []
        if not items:
            raise ActivityNotFoundError(item_id)
        return items[0]

    async def fetch_all(self) -> List[ActivityItem]:
        return await self._fetch(self._recent())

    async def fetch_by_author(self, user_id: str) -> List[ActivityItem]:
        return await self._fetch(self._recent().where("authorId", "==", user_id))

    async def fetch_by_gym(self, gym_id: str) -> List[ActivityItem]:
        return await self._fetch(self._recent().where("gymId", "==", gym_id))

    async def fetch_featured(self) -> List[ActivityItem]:
        return await self._fetch(self._recent().where("isFeatured", "==", True))

    async def fetch_featured_by_type(self, activity_type: ActivityType) -> List[ActivityItem]:
        return await self._fetch(
            self._recent()
            .where("isFeatured", "==", True)
            .where("type", "==", activity_type.value)
        )

    async def fetch_by_authors(self, author_ids: Iterable[str]) -> List[ActivityItem]:
        """
        Items by any of the given authors, newest first.

        Author sets larger than the store's "in" limit are queried in
        chunks and merged by (createdAt, id).
        """
        authors = list(dict.fromkeys(author_ids))
        snapshots: List[DocumentSnapshot] = []
        for chunk in chunked(authors):
            snapshots.extend(await self._store.query(self._recent().where("authorId", "in", chunk)))
        return await self.reconstruct(newest_first(snapshots))

    async def fetch_visits_between(
        self,
        author_ids: Iterable[str],
        start: datetime,
        end: datetime,
    ) -> List[GroupVisit]:
        """Visits by the given authors with start <= visitDate < end."""
        authors = list(dict.fromkeys(author_ids))
        snapshots: List[DocumentSnapshot] = []
        for chunk in chunked(authors):
            snapshots.extend(
                await self._store.query(
                    Query(ACTIVITY_ITEMS)
                    .where("type", "==", ActivityType.VISIT.value)
                    .where("authorId", "in", chunk)
                    .where("visitDate", ">=", start)
                    .where("visitDate", "<", end)
                    .order("visitDate")
                )
            )
        snapshots.sort(key=lambda s: (sort_key(s.get("visitDate")), s.id))
        items = await self.reconstruct(snapshots)
        return [item for item in items if isinstance(item, GroupVisit)]

    async def _feed_authors(self, user_id: str) -> List[str]:
        following = await self._relationships.get_following_ids(user_id)
        return list(dict.fromkeys([*following, user_id]))

    async def fetch_following_feed(self, user_id: str) -> List[ActivityItem]:
        """Items by the people the user follows plus the user's own."""
        return await self.fetch_by_authors(await self._feed_authors(user_id))

    # ═══════════════════════════════════════════════════════════
    # PAGINATION
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _resolve_page_size(page_size: Optional[int]) -> int:
        """page_size, or FEED_PAGE_SIZE when None; must be >= 1."""
        if page_size is None:
            page_size = get_default_page_size()
        if page_size < 1:
            raise ValidationError(f"page_size must be >= 1, got {page_size}")
        return page_size

    async def _page(
        self,
        queries: Sequence[Query],
        page_size: Optional[int],
        cursor: Optional[PageCursor],
    ) -> Page:
        """
        One page over the union of several (createdAt desc) queries.

        Each query is asked for page_size + 1 documents after the cursor;
        the merged head decides has_more, and the cursor advances to the
        last document of the page even when that document was dropped
        during reconstruction.
        """
        page_size = self._resolve_page_size(page_size)
        snapshots: List[DocumentSnapshot] = []
        for query in queries:
            paged = query.limit_to(page_size + 1)
            if cursor is not None:
                paged = paged.after(cursor.created_at, cursor.item_id)
            snapshots.extend(await self._store.query(paged))

        merged = newest_first(snapshots)[: page_size + 1]
        has_more = len(merged) > page_size
        page_docs = merged[:page_size]

        items = await self.reconstruct(page_docs)
        next_cursor = cursor_of(page_docs[-1]) if page_docs else cursor
        return Page(items=items, cursor=next_cursor, has_more=has_more)

    async def fetch_paginated(
        self,
        page_size: Optional[int] = None,
        cursor: Optional[PageCursor] = None,
    ) -> Page:
        return await self._page([self._recent()], page_size, cursor)

    async def fetch_paginated_by_author(
        self,
        user_id: str,
        page_size: Optional[int] = None,
        cursor: Optional[PageCursor] = None,
    ) -> Page:
        return await self._page([self._recent().where("authorId", "==", user_id)], page_size, cursor)

    async def fetch_paginated_by_authors(
        self,
        author_ids: Iterable[str],
        page_size: Optional[int] = None,
        cursor: Optional[PageCursor] = None,
    ) -> Page:
        authors = list(dict.fromkeys(author_ids))
        queries = [self._recent().where("authorId", "in", chunk) for chunk in chunked(authors)]
        if not queries:
            self._resolve_page_size(page_size)
            return Page(items=[], cursor=cursor, has_more=False)
        return await self._page(queries, page_size, cursor)

    async def fetch_paginated_following_feed(
        self,
        user_id: str,
        page_size: Optional[int] = None,
        cursor: Optional[PageCursor] = None,
    ) -> Page:
        return await self.fetch_paginated_by_authors(
            await self._feed_authors(user_id), page_size, cursor
        )

    # ═══════════════════════════════════════════════════════════
    # LIKES
    # ═══════════════════════════════════════════════════════════

    def _require_caller(self, action: str) -> str:
        caller = self._auth.current_user_id()
        if caller is None:
            raise UnauthenticatedError(f"User must be authenticated to {action}")
        return caller

    async def like(self, item_id: str, user_id: str) -> bool:
        """
        Like an item once per user.

        The likes/{user_id} marker is created and likeCount + 1 applied in
        one batch. The batch fails as a whole when the marker already
        exists, so a like racing another like by the same user is
        counted once.

        Returns:
            True if the like was recorded, False if it already existed

        Raises:
            UnauthenticatedError: No signed-in caller (nothing is written)
            ActivityNotFoundError: If the item does not exist
        """
        self._require_caller("like items")

        if await self._store.get(likes_of(item_id), user_id) is not None:
            return False

        batch = self._store.batch()
        batch.create(likes_of(item_id), user_id, {"userId": user_id, "timestamp": utc_now()})
        batch.update(ACTIVITY_ITEMS, item_id, {"likeCount": Increment(1)})
        try:
            await batch.commit()
        except DocumentExistsError:
            logger.debug("Like already recorded", item_id=item_id, user_id=user_id)
            return False
        except DocumentNotFoundError as e:
            raise ActivityNotFoundError(item_id) from e
        return True

    async def unlike(self, item_id: str, user_id: str) -> bool:
        """
        Remove a like. No-op when the user never liked the item.

        The marker delete must find the marker at commit time, so of two
        racing unlikes only one decrements likeCount (floored at 0).

        Returns:
            True if a like was removed
        """
        self._require_caller("unlike items")

        if await self._store.get(likes_of(item_id), user_id) is None:
            return False

        batch = self._store.batch()
        batch.delete(likes_of(item_id), user_id, must_exist=True)
        batch.update(ACTIVITY_ITEMS, item_id, {"likeCount": Increment(-1, floor=0)})
        try:
            await batch.commit()
        except DocumentNotFoundError as e:
            if e.path == likes_of(item_id):
                logger.debug("Like already removed", item_id=item_id, user_id=user_id)
                return False
            raise ActivityNotFoundError(item_id) from e
        return True

    async def is_liked_by(self, item_id: str, user_id: str) -> bool:
        return await self._store.get(likes_of(item_id), user_id) is not None

    async def get_user_liked_item_ids(
        self,
        user_id: str,
        item_ids: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        Ids of items the user has liked.

        Args:
            user_id: Liker
            item_ids: Restrict the check to these items (e.g. the page on
                screen); defaults to a scan of every item
        """
        liked: List[str] = []
        if item_ids is not None:
            for item_id in dict.fromkeys(item_ids):
                if await self.is_liked_by(item_id, user_id):
                    liked.append(item_id)
            return liked

        async for snapshot in scan(self._store, ACTIVITY_ITEMS):
            if await self.is_liked_by(snapshot.id, user_id):
                liked.append(snapshot.id)
        return liked

    # ═══════════════════════════════════════════════════════════
    # DELETE
    # ═══════════════════════════════════════════════════════════

    async def delete_item(self, item_id: str) -> None:
        """
        Delete an item with its likes and comments.

        The item and its sub-records are removed in batches (the item in
        the first one). Post-like variants then decrement the author's
        postCount; that second step is not rolled back into the delete.

        Raises:
            ActivityNotFoundError: If the item does not exist
            InvalidStateError: If the document has no author or type
        """
        snapshot = await self._store.get(ACTIVITY_ITEMS, item_id)
        if snapshot is None:
            raise ActivityNotFoundError(item_id)

        author_id = read_author_id(snapshot.data)
        activity_type = read_type(snapshot.data)
        if author_id is None or activity_type is None:
            raise InvalidStateError(f"Activity item {item_id} has no author or type")

        likes = await self._store.query(Query(likes_of(item_id)))
        comments = await self._store.query(Query(comments_of(item_id)))

        writes = [(ACTIVITY_ITEMS, item_id)]
        writes.extend((likes_of(item_id), s.id) for s in likes)
        writes.extend((comments_of(item_id), s.id) for s in comments)

        for group in chunked(writes, BATCH_WRITE_LIMIT):
            batch = self._store.batch()
            for path, doc_id in group:
                batch.delete(path, doc_id)
            await batch.commit()

        if activity_type.counts_as_post:
            await self._users.adjust_post_count(author_id, -1)

        logger.info(
            "Activity item deleted",
            item_id=item_id,
            type=activity_type.value,
            likes=len(likes),
            comments=len(comments),
        )

    # ═══════════════════════════════════════════════════════════
    # VISITS
    # ═══════════════════════════════════════════════════════════

    async def _visit_attendees(self, visit_id: str) -> List[str]:
        snapshot = await self._store.get(ACTIVITY_ITEMS, visit_id)
        if snapshot is None:
            raise ActivityNotFoundError(visit_id)
        if read_type(snapshot.data) is not ActivityType.VISIT:
            raise InvalidStateError(f"Item {visit_id} is not a visit")
        attendees = snapshot.get("attendees")
        if not isinstance(attendees, list):
            raise InvalidStateError(f"Could not read attendees list of visit {visit_id}")
        return [a for a in attendees if isinstance(a, str)]

    async def join_visit(self, visit_id: str, user_id: str) -> bool:
        """
        Add user to a visit's attendees.

        Returns:
            False when already attending

        Raises:
            ActivityNotFoundError: Visit missing
            InvalidStateError: Item is not a visit / attendees unreadable
        """
        if user_id in await self._visit_attendees(visit_id):
            return False
        await self._store.update(ACTIVITY_ITEMS, visit_id, {"attendees": ArrayUnion((user_id,))})
        return True

    async def leave_visit(self, visit_id: str, user_id: str) -> bool:
        """
        Remove user from a visit's attendees.

        Read-modify-write of the whole list: a join racing with this
        call can be lost.
        """
        attendees = await self._visit_attendees(visit_id)
        if user_id not in attendees:
            return False
        remaining = [a for a in attendees if a != user_id]
        await self._store.update(ACTIVITY_ITEMS, visit_id, {"attendees": remaining})
        return True

    async def update_visit_status(self, visit_id: str, status: VisitStatus) -> None:
        """
        Set a visit's status.

        Any status may follow any other; transitions are not validated.
        """
        await self._visit_attendees(visit_id)
        await self._store.update(ACTIVITY_ITEMS, visit_id, {"status": status.value})

    # ═══════════════════════════════════════════════════════════
    # FLAGS AND COUNTERS
    # ═══════════════════════════════════════════════════════════

    async def _update_item(self, item_id: str, fields: Dict[str, object]) -> None:
        try:
            await self._store.update(ACTIVITY_ITEMS, item_id, fields)
        except DocumentNotFoundError as e:
            raise ActivityNotFoundError(item_id) from e

    async def toggle_featured(self, item_id: str, featured: bool) -> None:
        await self._update_item(item_id, {"isFeatured": featured})

    async def increment_view_count(self, item_id: str) -> None:
        """Count one view of a beta post."""
        snapshot = await self._store.get(ACTIVITY_ITEMS, item_id)
        if snapshot is None:
            raise ActivityNotFoundError(item_id)
        if read_type(snapshot.data) is not ActivityType.BETA:
            raise InvalidStateError(f"Item {item_id} is not a beta post")
        await self._update_item(item_id, {"viewCount": Increment(1)})

    # ═══════════════════════════════════════════════════════════
    # SEARCH
    # ═══════════════════════════════════════════════════════════

    async def _scan_items(self) -> List[ActivityItem]:
        snapshots = [s async for s in scan(self._store, ACTIVITY_ITEMS)]
        return await self.reconstruct(newest_first(snapshots))

    async def search_by_text(self, text: str) -> List[ActivityItem]:
        """
        Case-insensitive search over item text and gym names.

        Scans the whole collection; a stand-in until an indexed search
        backend exists.
        """
        needle = text.strip().lower()
        if not needle:
            return []
        return [item for item in await self._scan_items() if needle in _searchable_text(item)]

    async def search_by_tag(self, tag: str) -> List[ActivityItem]:
        """Items whose variant matches the tag ("beta", "event", "visit")."""
        try:
            wanted = ActivityType(tag.strip().lower())
        except ValueError:
            return []
        if wanted is ActivityType.BASIC:
            return []
        return [item for item in await self._scan_items() if item.activity_type is wanted]


def _searchable_text(item: ActivityItem) -> str:
    parts: List[Optional[str]] = []
    if isinstance(item, (BasicPost, BetaPost)):
        parts.append(item.content)
    if isinstance(item, EventPost):
        parts.extend([item.title, item.description, item.location])
    if isinstance(item, GroupVisit):
        parts.append(item.description)
    gym = getattr(item, "gym", None)
    if gym is not None:
        parts.append(gym.name)
    return "\n".join(p for p in parts if p).lower()
