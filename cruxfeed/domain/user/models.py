"""
User domain models.

User profiles and directed follow edges.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cruxfeed.domain.shared.clock import normalize_instant, utc_now


class User(BaseModel):
    """
    Climber profile.

    post_count is a denormalized counter maintained by the activity
    repository on create/delete of posts; it is never recomputed by a scan.

    Example:
        >>> user = User(
        ...     id="user_1",
        ...     email="ada@example.com",
        ...     first_name="Ada",
        ...     last_name="Ondra",
        ... )
        >>> user.full_name
        'Ada Ondra'
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="User identifier")
    email: str = Field(..., description="Contact email")
    first_name: str = Field(..., description="Given name")
    last_name: str = Field(..., description="Family name")
    bio: Optional[str] = Field(None, description="Free-text profile bio")
    post_count: int = Field(0, ge=0, description="Denormalized post counter")
    logged_hours: int = Field(0, ge=0, description="Climbing hours logged")
    image_url: Optional[str] = Field(None, description="Profile picture URL")
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return normalize_instant(v)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on names and bio."""
        needle = query.lower()
        return (
            needle in self.first_name.lower()
            or needle in self.last_name.lower()
            or needle in self.full_name.lower()
            or (self.bio is not None and needle in self.bio.lower())
        )


class UserRelationship(BaseModel):
    """
    Directed follow edge: follower_id follows following_id.

    The id is derived from the pair (see relationship_id) so that two
    concurrent follow() calls write the same document.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    follower_id: str = Field(..., min_length=1)
    following_id: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return normalize_instant(v)

    @staticmethod
    def relationship_id(follower_id: str, following_id: str) -> str:
        return f"{follower_id}_{following_id}"

    @classmethod
    def create(cls, follower_id: str, following_id: str) -> "UserRelationship":
        return cls(
            id=cls.relationship_id(follower_id, following_id),
            follower_id=follower_id,
            following_id=following_id,
        )
