"""Notification document codec."""

from __future__ import annotations

from typing import Any, Dict, Optional

from cruxfeed.domain.notification.models import Notification, NotificationType
from cruxfeed.domain.shared.coerce import as_bool, as_datetime_or_now, as_str


class NotificationCodec:
    """Maps Notification <-> document."""

    @staticmethod
    def encode(notification: Notification) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": notification.id,
            "userId": notification.user_id,
            "title": notification.title,
            "message": notification.message,
            "timestamp": notification.timestamp,
            "isRead": notification.is_read,
            "type": notification.type.value,
        }
        if notification.related_item_id is not None:
            data["relatedItemId"] = notification.related_item_id
        return data

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[Notification]:
        notification_id = as_str(data, "id")
        user_id = as_str(data, "userId")
        title = as_str(data, "title")
        message = as_str(data, "message")
        type_raw = as_str(data, "type")
        if not notification_id or not user_id or title is None or message is None:
            return None
        try:
            notification_type = NotificationType(type_raw or NotificationType.SYSTEM.value)
        except ValueError:
            return None
        return Notification(
            id=notification_id,
            user_id=user_id,
            title=title,
            message=message,
            timestamp=as_datetime_or_now(data, "timestamp"),
            is_read=as_bool(data, "isRead"),
            type=notification_type,
            related_item_id=as_str(data, "relatedItemId"),
        )
