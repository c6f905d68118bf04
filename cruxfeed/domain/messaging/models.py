"""
Messaging domain models.

A Conversation id is derived from its sorted participant ids so that
concurrent "create conversation between A and B" calls converge on the
same document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cruxfeed.domain.shared.clock import normalize_instant, utc_now
from cruxfeed.domain.shared.ids import new_id


def conversation_id(participants: Iterable[str]) -> str:
    """
    Deterministic conversation id.

    Example:
        >>> conversation_id(["u2", "u1"])
        'u1_u2'
    """
    return "_".join(sorted(set(participants)))


class Conversation(BaseModel):
    """Conversation summary document with per-user unread counters."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    participants: Tuple[str, ...]
    last_message: str = ""
    last_message_timestamp: datetime = Field(default_factory=utc_now)
    last_message_sender_id: str = ""
    unread_counts: Dict[str, int] = Field(default_factory=dict)

    @field_validator("last_message_timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return normalize_instant(v)

    def other_participant_id(self, user_id: str) -> Optional[str]:
        return next((p for p in self.participants if p != user_id), None)

    def unread_count_for(self, user_id: str) -> int:
        return self.unread_counts.get(user_id, 0)

    def has_unread(self, user_id: str) -> bool:
        return self.unread_count_for(user_id) > 0


class Message(BaseModel):
    """Message stored under conversations/{id}/messages."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    conversation_id: str
    sender_id: str
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    read_status: Dict[str, bool] = Field(default_factory=dict)
    media_url: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return normalize_instant(v)

    def is_read_by(self, user_id: str) -> bool:
        return self.read_status.get(user_id, False)
