"""
Activity document codec.

encode() writes the variant's fields plus its ``type`` discriminant.
decode() takes the already-resolved author (and gym, where the variant
has one) and never raises: a document missing required fields, or
carrying an unknown type, yields None.

The codec performs no I/O. Resolving authorId/gymId is the caller's job
(see ActivityRepository), which is why the helpers read_type(),
read_author_id() and read_gym_id() are exposed here.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import pydantic
import structlog

from cruxfeed.domain.activity.models import (
    ActivityItem,
    ActivityType,
    BasicPost,
    BetaPost,
    Comment,
    EventPost,
    GroupVisit,
    Media,
    MediaType,
    VisitStatus,
)
from cruxfeed.domain.gym.models import Gym
from cruxfeed.domain.shared.coerce import (
    as_bool,
    as_datetime,
    as_datetime_or_now,
    as_float,
    as_int,
    as_str,
    as_str_list,
)
from cruxfeed.domain.shared.ids import new_id
from cruxfeed.domain.user.models import User

logger = structlog.get_logger(__name__)


def read_type(data: Dict[str, Any]) -> Optional[ActivityType]:
    """Discriminant of an activity document, None when absent or unknown."""
    raw = as_str(data, "type")
    if raw is None:
        return None
    try:
        return ActivityType(raw)
    except ValueError:
        return None


def read_author_id(data: Dict[str, Any]) -> Optional[str]:
    return as_str(data, "authorId") or None


def read_gym_id(data: Dict[str, Any]) -> Optional[str]:
    return as_str(data, "gymId") or None


# ═══════════════════════════════════════════════════════════
# MEDIA
# ═══════════════════════════════════════════════════════════


class MediaCodec:
    """Maps Media <-> embedded document."""

    @staticmethod
    def encode(media: Media) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": media.id,
            "url": media.url,
            "type": media.type.value,
            "uploadedAt": media.uploaded_at,
            "ownerId": media.owner_id,
        }
        if media.thumbnail_url is not None:
            data["thumbnailURL"] = media.thumbnail_url
        if media.storage_path is not None:
            data["storagePath"] = media.storage_path
        return data

    @staticmethod
    def decode(data: Any) -> Optional[Media]:
        if not isinstance(data, dict):
            return None
        media_id = as_str(data, "id")
        url = as_str(data, "url")
        owner_id = as_str(data, "ownerId")
        type_raw = as_str(data, "type")
        if not media_id or not url or not owner_id or type_raw is None:
            return None
        try:
            media_type = MediaType(type_raw)
        except ValueError:
            return None
        return Media(
            id=media_id,
            url=url,
            type=media_type,
            thumbnail_url=as_str(data, "thumbnailURL") or None,
            uploaded_at=as_datetime_or_now(data, "uploadedAt"),
            owner_id=owner_id,
            storage_path=as_str(data, "storagePath"),
        )

    @classmethod
    def decode_list(cls, data: Dict[str, Any], owner_id: str) -> Tuple[Media, ...]:
        """
        Read "mediaItems", falling back to the legacy single "mediaURL".

        Undecodable entries are skipped.
        """
        raw_items = data.get("mediaItems")
        if isinstance(raw_items, list):
            items = (cls.decode(raw) for raw in raw_items)
            return tuple(m for m in items if m is not None)

        legacy_url = as_str(data, "mediaURL")
        if legacy_url:
            return (Media(id=new_id(), url=legacy_url, type=MediaType.IMAGE, owner_id=owner_id),)
        return ()


def _encode_media_list(items: Tuple[Media, ...]) -> Optional[List[Dict[str, Any]]]:
    return [MediaCodec.encode(m) for m in items] if items else None


# ═══════════════════════════════════════════════════════════
# VARIANT ENCODERS
# ═══════════════════════════════════════════════════════════


def _encode_common(item: ActivityItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "authorId": item.author.id,
        "type": item.type,
        "createdAt": item.created_at,
        "likeCount": item.like_count,
        "commentCount": item.comment_count,
        "isFeatured": item.is_featured,
    }


def _encode_basic(item: BasicPost) -> Dict[str, Any]:
    data = _encode_common(item)
    data["content"] = item.content
    media = _encode_media_list(item.media_items)
    if media is not None:
        data["mediaItems"] = media
    return data


def _encode_beta(item: BetaPost) -> Dict[str, Any]:
    data = _encode_common(item)
    data["content"] = item.content
    data["gymId"] = item.gym.id
    data["viewCount"] = item.view_count
    media = _encode_media_list(item.media_items)
    if media is not None:
        data["mediaItems"] = media
    return data


def _encode_event(item: EventPost) -> Dict[str, Any]:
    data = _encode_common(item)
    data.update(
        {
            "title": item.title,
            "eventDate": item.event_date,
            "location": item.location,
            "maxAttendees": item.max_attendees,
            "registered": item.registered,
        }
    )
    if item.description is not None:
        data["description"] = item.description
    if item.gym is not None:
        data["gymId"] = item.gym.id
    media = _encode_media_list(item.media_items)
    if media is not None:
        data["mediaItems"] = media
    return data


def _encode_visit(item: GroupVisit) -> Dict[str, Any]:
    data = _encode_common(item)
    data.update(
        {
            "gymId": item.gym.id,
            "visitDate": item.visit_date,
            "duration": item.duration,
            "attendees": list(item.attendees),
            "status": item.status.value,
        }
    )
    if item.description is not None:
        data["description"] = item.description
    return data


# ═══════════════════════════════════════════════════════════
# VARIANT DECODERS
# ═══════════════════════════════════════════════════════════


def _common_fields(data: Dict[str, Any], author: User) -> Optional[Dict[str, Any]]:
    item_id = as_str(data, "id")
    if not item_id:
        return None
    return {
        "id": item_id,
        "author": author,
        "created_at": as_datetime_or_now(data, "createdAt"),
        "like_count": max(0, as_int(data, "likeCount")),
        "comment_count": max(0, as_int(data, "commentCount")),
        "is_featured": as_bool(data, "isFeatured"),
    }


def _decode_basic(data: Dict[str, Any], author: User, gym: Optional[Gym]) -> Optional[BasicPost]:
    common = _common_fields(data, author)
    content = as_str(data, "content")
    if common is None or content is None:
        return None
    return BasicPost(
        content=content,
        media_items=MediaCodec.decode_list(data, author.id),
        **common,
    )


def _decode_beta(data: Dict[str, Any], author: User, gym: Optional[Gym]) -> Optional[BetaPost]:
    common = _common_fields(data, author)
    content = as_str(data, "content")
    if common is None or content is None or gym is None:
        return None
    return BetaPost(
        content=content,
        media_items=MediaCodec.decode_list(data, author.id),
        gym=gym,
        view_count=max(0, as_int(data, "viewCount")),
        **common,
    )


def _decode_event(data: Dict[str, Any], author: User, gym: Optional[Gym]) -> Optional[EventPost]:
    common = _common_fields(data, author)
    title = as_str(data, "title")
    location = as_str(data, "location")
    if common is None or title is None or location is None:
        return None
    return EventPost(
        title=title,
        description=as_str(data, "description"),
        media_items=MediaCodec.decode_list(data, author.id),
        event_date=as_datetime_or_now(data, "eventDate"),
        location=location,
        max_attendees=max(0, as_int(data, "maxAttendees", default=10)),
        registered=max(0, as_int(data, "registered")),
        gym=gym,
        **common,
    )


def _decode_visit(data: Dict[str, Any], author: User, gym: Optional[Gym]) -> Optional[GroupVisit]:
    common = _common_fields(data, author)
    visit_date = as_datetime(data, "visitDate")
    if common is None or gym is None or visit_date is None:
        return None
    if not isinstance(data.get("attendees"), list):
        return None
    try:
        status = VisitStatus(as_str(data, "status") or VisitStatus.PLANNED.value)
    except ValueError:
        return None
    return GroupVisit(
        gym=gym,
        visit_date=visit_date,
        duration=max(0.0, as_float(data, "duration")),
        description=as_str(data, "description"),
        attendees=tuple(as_str_list(data, "attendees")),
        status=status,
        **common,
    )


_Decoder = Callable[[Dict[str, Any], User, Optional[Gym]], Optional[ActivityItem]]

_ENCODERS: Dict[ActivityType, Callable[[Any], Dict[str, Any]]] = {
    ActivityType.BASIC: _encode_basic,
    ActivityType.BETA: _encode_beta,
    ActivityType.EVENT: _encode_event,
    ActivityType.VISIT: _encode_visit,
}

_DECODERS: Dict[ActivityType, _Decoder] = {
    ActivityType.BASIC: _decode_basic,
    ActivityType.BETA: _decode_beta,
    ActivityType.EVENT: _decode_event,
    ActivityType.VISIT: _decode_visit,
}

# Variants that cannot be reconstructed without their gym.
GYM_REQUIRED = frozenset({ActivityType.BETA, ActivityType.VISIT})


class ActivityCodec:
    """
    Maps ActivityItem variants <-> documents.

    Example:
        >>> doc = ActivityCodec.encode(post)
        >>> doc["type"]
        'basic'
        >>> ActivityCodec.decode(doc, author=post.author) == post
        True
    """

    @staticmethod
    def encode(item: ActivityItem) -> Dict[str, Any]:
        return _ENCODERS[item.activity_type](item)

    @staticmethod
    def decode(
        data: Dict[str, Any],
        author: User,
        gym: Optional[Gym] = None,
    ) -> Optional[ActivityItem]:
        """
        Rebuild an activity item from its document.

        Args:
            data: Stored document
            author: Resolved author (document's authorId)
            gym: Resolved gym (document's gymId), None when absent

        Returns:
            The variant named by ``type``, or None when the type is unknown,
            a required field is missing, or a required gym was not supplied
        """
        activity_type = read_type(data)
        if activity_type is None:
            return None
        try:
            return _DECODERS[activity_type](data, author, gym)
        except pydantic.ValidationError as e:
            logger.warning(
                "Undecodable activity document",
                item_id=data.get("id"),
                type=activity_type.value,
                error=str(e),
            )
            return None


class CommentCodec:
    """Maps Comment <-> document in an item's "comments" sub-collection."""

    @staticmethod
    def encode(comment: Comment) -> Dict[str, Any]:
        return {
            "id": comment.id,
            "authorId": comment.author.id,
            "content": comment.content,
            "timeStamp": comment.timestamp,
        }

    @staticmethod
    def decode(data: Dict[str, Any], author: User) -> Optional[Comment]:
        comment_id = as_str(data, "id")
        content = as_str(data, "content")
        if not comment_id or content is None:
            return None
        return Comment(
            id=comment_id,
            author=author,
            content=content,
            timestamp=as_datetime_or_now(data, "timeStamp"),
        )
