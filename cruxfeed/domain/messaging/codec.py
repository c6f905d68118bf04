"""Conversation and message document codecs."""

from __future__ import annotations

from typing import Any, Dict, Optional

from cruxfeed.domain.messaging.models import Conversation, Message
from cruxfeed.domain.shared.coerce import as_datetime_or_now, as_str, as_str_list


def _int_map(raw: Any) -> Dict[str, int]:
    if not isinstance(raw, dict):
        return {}
    return {
        str(k): max(0, int(v))
        for k, v in raw.items()
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    }


def _bool_map(raw: Any) -> Dict[str, bool]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): v for k, v in raw.items() if isinstance(v, bool)}


class ConversationCodec:
    """Maps Conversation <-> document."""

    @staticmethod
    def encode(conversation: Conversation) -> Dict[str, Any]:
        return {
            "id": conversation.id,
            "participants": list(conversation.participants),
            "lastMessage": conversation.last_message,
            "lastMessageTimestamp": conversation.last_message_timestamp,
            "lastMessageSenderId": conversation.last_message_sender_id,
            "unreadCounts": dict(conversation.unread_counts),
        }

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[Conversation]:
        conv_id = as_str(data, "id")
        participants = as_str_list(data, "participants")
        if not conv_id or not participants:
            return None
        return Conversation(
            id=conv_id,
            participants=tuple(participants),
            last_message=as_str(data, "lastMessage") or "",
            last_message_timestamp=as_datetime_or_now(data, "lastMessageTimestamp"),
            last_message_sender_id=as_str(data, "lastMessageSenderId") or "",
            unread_counts=_int_map(data.get("unreadCounts")),
        )


class MessageCodec:
    """Maps Message <-> document."""

    @staticmethod
    def encode(message: Message) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": message.id,
            "conversationId": message.conversation_id,
            "senderId": message.sender_id,
            "content": message.content,
            "timestamp": message.timestamp,
            "readStatus": dict(message.read_status),
        }
        if message.media_url is not None:
            data["mediaURL"] = message.media_url
        return data

    @staticmethod
    def decode(data: Dict[str, Any]) -> Optional[Message]:
        message_id = as_str(data, "id")
        conv_id = as_str(data, "conversationId")
        sender_id = as_str(data, "senderId")
        content = as_str(data, "content")
        if not message_id or not conv_id or not sender_id or content is None:
            return None
        return Message(
            id=message_id,
            conversation_id=conv_id,
            sender_id=sender_id,
            content=content,
            timestamp=as_datetime_or_now(data, "timestamp"),
            read_status=_bool_map(data.get("readStatus")),
            media_url=as_str(data, "mediaURL") or None,
        )
