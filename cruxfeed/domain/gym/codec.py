"""
Gym document codecs.

Handles two historical quirks:

- location was once written under the misspelled key "locaiton";
  it is still read as a fallback but only "location" is written.
- climbingType was once a single string; a list is written now.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pydantic
import structlog

from cruxfeed.domain.gym.models import (
    AdminRole,
    ClimbingType,
    Gym,
    GymAdministrator,
    GymFavorite,
    GymVisitRecord,
    VisitorRecord,
)
from cruxfeed.domain.shared.clock import start_of_day
from cruxfeed.domain.shared.coerce import (
    as_datetime,
    as_datetime_or_now,
    as_optional_url,
    as_str,
    as_str_list,
)

logger = structlog.get_logger(__name__)

LEGACY_LOCATION_KEY = "locaiton"
UNKNOWN_LOCATION = "Unknown"


def _read_climbing_types(raw: Any) -> List[ClimbingType]:
    values: List[Any]
    if isinstance(raw, list):
        values = raw
    elif isinstance(raw, str):
        values = [raw]
    else:
        values = []

    types: List[ClimbingType] = []
    for value in values:
        try:
            types.append(ClimbingType(value))
        except ValueError:
            continue
    return types or [ClimbingType.BOULDERING]


class GymCodec:
    """Maps Gym <-> document."""

    @staticmethod
    def encode(gym: Gym) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": gym.id,
            "email": gym.email,
            "name": gym.name,
            "location": gym.location,
            "climbingType": sorted(t.value for t in gym.climbing_types),
            "amenities": list(gym.amenities),
            "events": list(gym.events),
            "createdAt": gym.created_at,
        }
        if gym.description is not None:
            data["description"] = gym.description
        if gym.image_url is not None:
            data["imageUrl"] = gym.image_url
        return data

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[Gym]:
        gym_id = as_str(data, "id")
        email = as_str(data, "email")
        name = as_str(data, "name")
        if not gym_id or email is None or name is None:
            return None

        location = as_str(data, "location") or as_str(data, LEGACY_LOCATION_KEY)

        try:
            return Gym(
                id=gym_id,
                email=email,
                name=name,
                location=location if location is not None else UNKNOWN_LOCATION,
                climbing_types=frozenset(_read_climbing_types(data.get("climbingType"))),
                amenities=tuple(as_str_list(data, "amenities")),
                events=tuple(as_str_list(data, "events")),
                description=as_str(data, "description"),
                image_url=as_optional_url(data, "imageUrl"),
                created_at=as_datetime_or_now(data, "createdAt"),
            )
        except pydantic.ValidationError as e:
            logger.warning("Undecodable gym document", gym_id=gym_id, error=str(e))
            return None


class GymAdministratorCodec:
    """Maps GymAdministrator <-> document."""

    @staticmethod
    def encode(admin: GymAdministrator) -> Dict[str, Any]:
        return {
            "id": admin.id,
            "userId": admin.user_id,
            "gymId": admin.gym_id,
            "role": admin.role.value,
            "addedAt": admin.added_at,
            "addedBy": admin.added_by,
        }

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[GymAdministrator]:
        admin_id = as_str(data, "id")
        user_id = as_str(data, "userId")
        gym_id = as_str(data, "gymId")
        role_raw = as_str(data, "role")
        added_by = as_str(data, "addedBy")
        if not admin_id or not user_id or not gym_id or role_raw is None or added_by is None:
            return None
        try:
            role = AdminRole(role_raw)
        except ValueError:
            return None
        return GymAdministrator(
            id=admin_id,
            user_id=user_id,
            gym_id=gym_id,
            role=role,
            added_at=as_datetime_or_now(data, "addedAt"),
            added_by=added_by,
        )


class GymFavoriteCodec:
    """Maps GymFavorite <-> document."""

    @staticmethod
    def encode(favorite: GymFavorite) -> Dict[str, Any]:
        return {
            "userId": favorite.user_id,
            "gymId": favorite.gym_id,
            "createdAt": favorite.created_at,
        }

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[GymFavorite]:
        user_id = as_str(data, "userId")
        gym_id = as_str(data, "gymId")
        if not user_id or not gym_id:
            return None
        return GymFavorite(
            user_id=user_id,
            gym_id=gym_id,
            created_at=as_datetime_or_now(data, "createdAt"),
        )


# ═══════════════════════════════════════════════════════════
# PER-DAY ROSTERS
# ═══════════════════════════════════════════════════════════


class GymVisitRecordCodec:
    """Maps GymVisitRecord <-> document."""

    @staticmethod
    def encode_visitor(visitor: VisitorRecord) -> Dict[str, Any]:
        return {
            "userId": visitor.user_id,
            "visitTime": visitor.visit_time,
            "visitId": visitor.visit_id,
        }

    @staticmethod
    def decode_visitor(data: Any) -> Optional[VisitorRecord]:
        if not isinstance(data, dict):
            return None
        user_id = as_str(data, "userId")
        visit_time = as_datetime(data, "visitTime")
        if not user_id or visit_time is None:
            return None
        return VisitorRecord(user_id=user_id, visit_time=visit_time, visit_id=as_str(data, "visitId"))

    @classmethod
    def encode(cls, record: GymVisitRecord) -> Dict[str, Any]:
        return {
            "id": record.id,
            "gymId": record.gym_id,
            "date": record.date,
            "visitors": [cls.encode_visitor(v) for v in record.visitors],
        }

    @classmethod
    def decode(cls, data: Dict[str, Any]) -> Optional[GymVisitRecord]:
        """
        Rebuild a roster.

        Malformed visitor entries are skipped; duplicate user entries
        (left by historical array-union writes) collapse to the first.
        """
        record_id = as_str(data, "id")
        gym_id = as_str(data, "gymId")
        day = as_datetime(data, "date")
        if not record_id or not gym_id or day is None:
            return None

        visitors: List[VisitorRecord] = []
        seen = set()
        raw_visitors = data.get("visitors")
        for raw in raw_visitors if isinstance(raw_visitors, list) else []:
            visitor = cls.decode_visitor(raw)
            if visitor is None or visitor.user_id in seen:
                continue
            seen.add(visitor.user_id)
            visitors.append(visitor)

        return GymVisitRecord(
            id=record_id,
            gym_id=gym_id,
            date=start_of_day(day),
            visitors=tuple(visitors),
        )
