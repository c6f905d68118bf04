"""Notification repository."""

from __future__ import annotations

from typing import List, Optional

import structlog

from cruxfeed.domain.notification.codec import NotificationCodec
from cruxfeed.domain.notification.models import Notification, NotificationType
from cruxfeed.domain.shared.errors import DocumentNotFoundError, NotFoundError
from cruxfeed.domain.shared.ports.document_store import IDocumentStore, Query
from cruxfeed.repository.collections import NOTIFICATIONS

logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 50


class NotificationRepository:
    """Per-user notifications, newest first."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def fetch(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Notification]:
        snapshots = await self._store.query(
            Query(NOTIFICATIONS)
            .where("userId", "==", user_id)
            .order("timestamp", descending=True)
            .limit_to(limit)
        )
        notifications: List[Notification] = []
        for snapshot in snapshots:
            notification = NotificationCodec.decode(snapshot.data)
            if notification is None:
                logger.info("Skipping malformed notification", notification_id=snapshot.id)
                continue
            notifications.append(notification)
        return notifications

    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.SYSTEM,
        related_item_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            related_item_id=related_item_id,
        )
        await self._store.set(
            NOTIFICATIONS, notification.id, NotificationCodec.encode(notification)
        )
        return notification

    async def mark_as_read(self, notification_id: str) -> None:
        """
        Raises:
            NotFoundError: If the notification does not exist
        """
        try:
            await self._store.update(NOTIFICATIONS, notification_id, {"isRead": True})
        except DocumentNotFoundError as e:
            raise NotFoundError(f"Notification not found: {notification_id}") from e

    async def mark_all_as_read(self, user_id: str) -> int:
        """
        Mark every unread notification of a user as read in one batch.

        Returns:
            Number of notifications updated
        """
        unread = await self._store.query(
            Query(NOTIFICATIONS).where("userId", "==", user_id).where("isRead", "==", False)
        )
        if not unread:
            return 0

        batch = self._store.batch()
        for snapshot in unread:
            batch.update(NOTIFICATIONS, snapshot.id, {"isRead": True})
        await batch.commit()

        logger.info("Notifications marked read", user_id=user_id, count=len(unread))
        return len(unread)
