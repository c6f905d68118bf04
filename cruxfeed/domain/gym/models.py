"""
Gym domain models.

Gyms, their administrators, user favourites and per-day visitor rosters.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cruxfeed.domain.shared.clock import format_day_key, normalize_instant, start_of_day, utc_now
from cruxfeed.domain.user.models import User


class ClimbingType(str, Enum):
    """Disciplines offered by a gym."""

    BOULDERING = "bouldering"
    LEAD = "lead"
    TOP_ROPE = "topRope"


class AdminRole(str, Enum):
    """
    Gym administrator role.

    owner and admin may delete other users' content; manager may only edit.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"


class Gym(BaseModel):
    """
    Climbing gym.

    climbing_types is a set; historical documents stored a single value.

    Example:
        >>> gym = Gym(
        ...     id="gym_1",
        ...     name="The Arch",
        ...     email="hello@arch.example",
        ...     location="London",
        ...     climbing_types=frozenset({ClimbingType.BOULDERING}),
        ... )
        >>> ClimbingType.BOULDERING in gym.climbing_types
        True
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(...)
    email: str = Field(...)
    location: str = Field("Unknown")
    climbing_types: FrozenSet[ClimbingType] = Field(
        default_factory=lambda: frozenset({ClimbingType.BOULDERING})
    )
    amenities: Tuple[str, ...] = ()
    events: Tuple[str, ...] = ()
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return normalize_instant(v)


class GymAdministrator(BaseModel):
    """User holding an administrative role on a gym."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    gym_id: str = Field(..., min_length=1)
    role: AdminRole
    added_at: datetime = Field(default_factory=utc_now)
    added_by: str = Field(...)

    @field_validator("added_at")
    @classmethod
    def normalize_added_at(cls, v: datetime) -> datetime:
        return normalize_instant(v)


class GymFavorite(BaseModel):
    """User bookmarked a gym. Document id is "{user_id}_{gym_id}"."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    gym_id: str
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def id(self) -> str:
        return f"{self.user_id}_{self.gym_id}"


# ═══════════════════════════════════════════════════════════
# PER-DAY ROSTERS
# ═══════════════════════════════════════════════════════════


class VisitorRecord(BaseModel):
    """One user's planned visit inside a roster."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    visit_time: datetime
    visit_id: Optional[str] = Field(None, description="Originating GroupVisit, if any")

    @field_validator("visit_time")
    @classmethod
    def normalize_visit_time(cls, v: datetime) -> datetime:
        return normalize_instant(v)


class GymVisitRecord(BaseModel):
    """
    Visitors of one gym on one day.

    Keyed by (gym_id, date). At most one VisitorRecord per user.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    gym_id: str = Field(..., min_length=1)
    date: datetime
    visitors: Tuple[VisitorRecord, ...] = ()

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return start_of_day(v)

    @staticmethod
    def record_id(gym_id: str, day: datetime) -> str:
        return f"{gym_id}_{format_day_key(day)}"

    def has_visitor(self, user_id: str) -> bool:
        return any(v.user_id == user_id for v in self.visitors)

    def without(self, user_id: str) -> "GymVisitRecord":
        return self.model_copy(
            update={"visitors": tuple(v for v in self.visitors if v.user_id != user_id)}
        )


class UserVisit(BaseModel):
    """Resolved visitor: user + planned time."""

    model_config = ConfigDict(frozen=True)

    visit_id: str
    user: User
    visit_date: datetime


class GymVisit(BaseModel):
    """Gym together with the resolved users visiting it."""

    model_config = ConfigDict(frozen=True)

    gym: Gym
    attendees: List[UserVisit]
    is_favourite: bool = False


class VisitorInfo(BaseModel):
    """Author of a GroupVisit and when they plan to be there."""

    model_config = ConfigDict(frozen=True)

    user: User
    visit_date: datetime


class GymWithVisits(BaseModel):
    """GroupVisits of followed users grouped under their gym."""

    model_config = ConfigDict(frozen=True)

    gym: Gym
    visitors: List[VisitorInfo]
