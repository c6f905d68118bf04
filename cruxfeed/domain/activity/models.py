"""
Activity domain models.

ActivityItem is a tagged union of four variants. Every variant carries a
literal ``type`` discriminant which is persisted with the document and
drives reconstruction.

    basic  -> BasicPost
    beta   -> BetaPost   (requires gym)
    event  -> EventPost  (gym optional)
    visit  -> GroupVisit (requires gym)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cruxfeed.domain.gym.models import Gym
from cruxfeed.domain.shared.clock import normalize_instant, utc_now
from cruxfeed.domain.shared.ids import new_id
from cruxfeed.domain.user.models import User


class ActivityType(str, Enum):
    """Persisted discriminant values."""

    BASIC = "basic"
    BETA = "beta"
    EVENT = "event"
    VISIT = "visit"

    @property
    def counts_as_post(self) -> bool:
        """Post-like variants adjust the author's post_count; visits don't."""
        return self is not ActivityType.VISIT


class VisitStatus(str, Enum):
    """
    GroupVisit lifecycle.

    Intended flow is planned -> ongoing -> completed, with cancelled
    reachable from planned/ongoing. Transitions are not enforced.
    """

    PLANNED = "planned"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    NONE = "none"


class Media(BaseModel):
    """Uploaded media attached to a post."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    url: str = Field(..., min_length=1)
    type: MediaType = MediaType.IMAGE
    thumbnail_url: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utc_now)
    owner_id: str = Field(..., min_length=1)
    storage_path: Optional[str] = Field(
        None, description="Blob path, known only for media uploaded in this process"
    )

    @field_validator("uploaded_at")
    @classmethod
    def normalize_uploaded_at(cls, v: datetime) -> datetime:
        return normalize_instant(v)


# ═══════════════════════════════════════════════════════════
# ACTIVITY VARIANTS
# ═══════════════════════════════════════════════════════════


class _ActivityBase(BaseModel):
    """Fields shared by every activity variant."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, min_length=1)
    author: User
    created_at: datetime = Field(default_factory=utc_now)
    like_count: int = Field(0, ge=0, description="Cached size of likes sub-collection")
    comment_count: int = Field(0, ge=0, description="Cached size of comments sub-collection")
    is_featured: bool = False

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return normalize_instant(v)

    @property
    def activity_type(self) -> ActivityType:
        return ActivityType(self.type)  # type: ignore[attr-defined]

    @property
    def gym_id(self) -> Optional[str]:
        gym = getattr(self, "gym", None)
        return gym.id if gym is not None else None


class BasicPost(_ActivityBase):
    """Free-text post with optional media."""

    type: Literal["basic"] = "basic"
    content: str
    media_items: Tuple[Media, ...] = ()


class BetaPost(_ActivityBase):
    """Route beta tied to a gym."""

    type: Literal["beta"] = "beta"
    content: str
    media_items: Tuple[Media, ...] = ()
    gym: Gym
    view_count: int = Field(0, ge=0)


class EventPost(_ActivityBase):
    """Event announcement, optionally hosted by a gym."""

    type: Literal["event"] = "event"
    title: str
    description: Optional[str] = None
    media_items: Tuple[Media, ...] = ()
    event_date: datetime
    location: str
    max_attendees: int = Field(10, ge=0)
    registered: int = Field(0, ge=0)
    gym: Optional[Gym] = None

    @field_validator("event_date")
    @classmethod
    def normalize_event_date(cls, v: datetime) -> datetime:
        return normalize_instant(v)


class GroupVisit(_ActivityBase):
    """
    Planned group session at a gym.

    attendees is ordered; membership has set semantics (no duplicates).
    duration is in seconds.
    """

    type: Literal["visit"] = "visit"
    gym: Gym
    visit_date: datetime
    duration: float = Field(..., ge=0, description="Seconds")
    description: Optional[str] = None
    attendees: Tuple[str, ...] = ()
    status: VisitStatus = VisitStatus.PLANNED

    @field_validator("visit_date")
    @classmethod
    def normalize_visit_date(cls, v: datetime) -> datetime:
        return normalize_instant(v)

    @field_validator("attendees")
    @classmethod
    def dedupe_attendees(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(v))


ActivityItem = Annotated[
    Union[BasicPost, BetaPost, EventPost, GroupVisit],
    Field(discriminator="type"),
]


# ═══════════════════════════════════════════════════════════
# COMMENTS AND PAGES
# ═══════════════════════════════════════════════════════════


class Comment(BaseModel):
    """Comment on an activity item, stored in its "comments" sub-collection."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    author: User
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return normalize_instant(v)


class PageCursor(BaseModel):
    """
    Opaque position in a (created_at desc, id desc) ordering.

    Points at the last document of the previous page, whether or not
    that document could be reconstructed. created_at is None when that
    document had no readable createdAt.
    """

    model_config = ConfigDict(frozen=True)

    created_at: Optional[datetime]
    item_id: str

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return normalize_instant(v) if v is not None else None


class Page(BaseModel):
    """One page of a paginated activity fetch."""

    model_config = ConfigDict(frozen=True)

    items: List[ActivityItem]
    cursor: Optional[PageCursor] = None
    has_more: bool = False
