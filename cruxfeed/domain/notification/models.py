"""Notification domain model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cruxfeed.domain.shared.clock import normalize_instant, utc_now
from cruxfeed.domain.shared.ids import new_id


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    MENTION = "mention"
    SYSTEM = "system"


class Notification(BaseModel):
    """Notification addressed to a single user."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    user_id: str = Field(..., min_length=1)
    title: str
    message: str
    timestamp: datetime = Field(default_factory=utc_now)
    is_read: bool = False
    type: NotificationType = NotificationType.SYSTEM
    related_item_id: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return normalize_instant(v)
