"""
User document codec.

Maps User and UserRelationship to and from store documents.
decode() never raises: malformed documents yield None.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import pydantic
import structlog

from cruxfeed.domain.shared.coerce import (
    as_datetime_or_now,
    as_int,
    as_optional_url,
    as_str,
)
from cruxfeed.domain.user.models import User, UserRelationship

logger = structlog.get_logger(__name__)


class UserCodec:
    """Maps User <-> document."""

    @staticmethod
    def encode(user: User) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": user.id,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "postCount": user.post_count,
            "loggedHours": user.logged_hours,
            "imageUrl": user.image_url or "",
            "createdAt": user.created_at,
        }
        if user.bio is not None:
            data["bio"] = user.bio
        return data

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[User]:
        """
        Rebuild a User.

        Required: id, email, firstName, lastName. Counters default to 0
        and createdAt to now.
        """
        user_id = as_str(data, "id")
        email = as_str(data, "email")
        first_name = as_str(data, "firstName")
        last_name = as_str(data, "lastName")
        if user_id is None or email is None or first_name is None or last_name is None:
            return None

        try:
            return User(
                id=user_id,
                email=email,
                first_name=first_name,
                last_name=last_name,
                bio=as_str(data, "bio"),
                post_count=max(0, as_int(data, "postCount")),
                logged_hours=max(0, as_int(data, "loggedHours")),
                image_url=as_optional_url(data, "imageUrl"),
                created_at=as_datetime_or_now(data, "createdAt"),
            )
        except pydantic.ValidationError as e:
            logger.warning("Undecodable user document", user_id=user_id, error=str(e))
            return None


class RelationshipCodec:
    """Maps UserRelationship <-> document."""

    @staticmethod
    def encode(relationship: UserRelationship) -> Dict[str, Any]:
        return {
            "id": relationship.id,
            "followerId": relationship.follower_id,
            "followingId": relationship.following_id,
            "timestamp": relationship.timestamp,
        }

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[UserRelationship]:
        rel_id = as_str(data, "id")
        follower_id = as_str(data, "followerId")
        following_id = as_str(data, "followingId")
        if not rel_id or not follower_id or not following_id:
            return None
        return UserRelationship(
            id=rel_id,
            follower_id=follower_id,
            following_id=following_id,
            timestamp=as_datetime_or_now(data, "timestamp"),
        )
