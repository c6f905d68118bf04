"""Repositories, one per aggregate, on top of the document store port."""

from cruxfeed.repository.activity_repository import ActivityRepository
from cruxfeed.repository.comment_repository import CommentRepository
from cruxfeed.repository.gym_repository import GymRepository
from cruxfeed.repository.gym_visit_repository import GymVisitRepository
from cruxfeed.repository.media_repository import MediaKind, MediaRepository
from cruxfeed.repository.message_repository import MessageRepository
from cruxfeed.repository.notification_repository import NotificationRepository
from cruxfeed.repository.permissions_repository import PermissionsRepository
from cruxfeed.repository.relationship_repository import RelationshipRepository
from cruxfeed.repository.user_repository import UserRepository

__all__ = [
    "ActivityRepository",
    "CommentRepository",
    "GymRepository",
    "GymVisitRepository",
    "MediaKind",
    "MediaRepository",
    "MessageRepository",
    "NotificationRepository",
    "PermissionsRepository",
    "RelationshipRepository",
    "UserRepository",
]
