"""
Feed Composer.

Builds the personalised views that combine the follow graph with
activity queries:

- following feed: items by followed users plus the user's own items,
  newest first, whole or paginated
- friends' visits today: today's GroupVisits by followed users, grouped
  by gym

Ordering is purely reverse-chronological with the item id as tiebreak.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import structlog

from cruxfeed.domain.activity.models import ActivityItem, Page, PageCursor
from cruxfeed.domain.gym.models import Gym, GymWithVisits, VisitorInfo
from cruxfeed.domain.shared.clock import day_bounds
from cruxfeed.repository.activity_repository import ActivityRepository
from cruxfeed.repository.relationship_repository import RelationshipRepository

logger = structlog.get_logger(__name__)


class FeedComposer:
    """
    Composes feeds from the follow graph and the activity repository.

    Dependencies:
    - relationships: follow sets (cache-backed)
    - activities: author-set queries and reconstruction

    Example:
        >>> composer = FeedComposer(relationships, activities)
        >>> page = await composer.following_feed_page("u1", page_size=20)
        >>> while page.has_more:
        ...     page = await composer.following_feed_page("u1", 20, page.cursor)
    """

    def __init__(
        self,
        relationships: RelationshipRepository,
        activities: ActivityRepository,
    ) -> None:
        self.relationships = relationships
        self.activities = activities

    async def feed_authors(self, user_id: str) -> List[str]:
        """Follow set of user_id plus user_id itself."""
        following = await self.relationships.get_following_ids(user_id)
        return list(dict.fromkeys([*following, user_id]))

    async def following_feed(self, user_id: str) -> List[ActivityItem]:
        """
        Whole following feed, newest first.

        Never empty merely because the user follows nobody: the user's own
        items are always part of it.
        """
        authors = await self.feed_authors(user_id)
        items = await self.activities.fetch_by_authors(authors)
        logger.debug("Following feed composed", user_id=user_id, authors=len(authors), items=len(items))
        return items

    async def following_feed_page(
        self,
        user_id: str,
        page_size: Optional[int] = None,
        cursor: Optional[PageCursor] = None,
    ) -> Page:
        """
        One page of the following feed.

        Args:
            user_id: Feed owner
            page_size: Items per page (>= 1); FEED_PAGE_SIZE when None
            cursor: Cursor of the previous page, None for the first page

        Returns:
            Page whose cursor continues after its last document

        Raises:
            ValidationError: If page_size < 1
        """
        authors = await self.feed_authors(user_id)
        return await self.activities.fetch_paginated_by_authors(authors, page_size, cursor)

    async def friends_visits_today(self, user_id: str) -> List[GymWithVisits]:
        """
        Today's group visits by followed users, grouped by gym.

        "Today" is the current UTC day. Gyms appear in order of their
        earliest visit; visitors within a gym are ordered by visit time.
        """
        following = await self.relationships.get_following_ids(user_id)
        if not following:
            return []

        start, end = day_bounds()
        visits = await self.activities.fetch_visits_between(following, start, end)

        gyms: Dict[str, Gym] = {}
        visitors: Dict[str, List[VisitorInfo]] = {}
        for visit in visits:
            gyms.setdefault(visit.gym.id, visit.gym)
            visitors.setdefault(visit.gym.id, []).append(
                VisitorInfo(user=visit.author, visit_date=visit.visit_date)
            )

        return [GymWithVisits(gym=gym, visitors=visitors[gym_id]) for gym_id, gym in gyms.items()]
