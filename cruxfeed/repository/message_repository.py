"""
Message repository.

Conversations live in "conversations" under a deterministic id derived
from their participants; messages live in conversations/{id}/messages.
Each message carries a per-participant readStatus map and the
conversation a per-participant unreadCounts map.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

import structlog

from cruxfeed.domain.messaging.codec import ConversationCodec, MessageCodec
from cruxfeed.domain.messaging.models import Conversation, Message, conversation_id
from cruxfeed.domain.shared.errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    NotFoundError,
    ValidationError,
)
from cruxfeed.domain.shared.ports.document_store import (
    DocumentSnapshot,
    ErrorCallback,
    IDocumentStore,
    Increment,
    ListenerRegistration,
    Query,
)
from cruxfeed.domain.user.models import User
from cruxfeed.repository.collections import CONVERSATIONS, messages_of
from cruxfeed.repository.user_repository import UserRepository

logger = structlog.get_logger(__name__)

ConversationsCallback = Callable[[List[Conversation]], Union[None, Awaitable[None]]]
MessagesCallback = Callable[[List[Message]], Union[None, Awaitable[None]]]


def _decode_conversations(snapshots: List[DocumentSnapshot]) -> List[Conversation]:
    decoded = (ConversationCodec.decode(s.data) for s in snapshots)
    return [c for c in decoded if c is not None]


def _decode_messages(snapshots: List[DocumentSnapshot]) -> List[Message]:
    decoded = (MessageCodec.decode(s.data) for s in snapshots)
    return [m for m in decoded if m is not None]


class MessageRepository:
    """
    Direct conversations between users.

    Example:
        >>> conv = await messages.create_conversation(["u2", "u1"])
        >>> conv.id
        'u1_u2'
        >>> await messages.send_message(conv.id, "u1", "Session tonight?")
    """

    def __init__(self, store: IDocumentStore, users: UserRepository) -> None:
        self._store = store
        self._users = users

    async def create_conversation(self, participants: Iterable[str]) -> Conversation:
        """
        Get or create the conversation between the given users.

        Repeated or concurrent calls with the same participants (in any
        order) resolve to the same document. The document is written with
        a create, never an overwrite: a caller that loses the race reads
        back the winner's document, including any message already sent.

        Raises:
            ValidationError: Fewer than two distinct participants
            NotFoundError: The existing document could not be read back
        """
        members = sorted(set(participants))
        if len(members) < 2:
            raise ValidationError("A conversation needs at least two participants")

        conv_id = conversation_id(members)
        existing = await self.get_conversation(conv_id)
        if existing is not None:
            return existing

        conversation = Conversation(
            id=conv_id,
            participants=tuple(members),
            unread_counts={member: 0 for member in members},
        )
        try:
            await self._store.create(
                CONVERSATIONS, conv_id, ConversationCodec.encode(conversation)
            )
        except DocumentExistsError:
            logger.debug("Conversation created concurrently", conversation_id=conv_id)
            return await self._require_conversation(conv_id)
        logger.info("Conversation created", conversation_id=conv_id)
        return conversation

    async def get_conversation(self, conv_id: str) -> Optional[Conversation]:
        snapshot = await self._store.get(CONVERSATIONS, conv_id)
        if snapshot is None:
            return None
        return ConversationCodec.decode(snapshot.data)

    async def _require_conversation(self, conv_id: str) -> Conversation:
        conversation = await self.get_conversation(conv_id)
        if conversation is None:
            raise NotFoundError(f"Conversation not found: {conv_id}")
        return conversation

    async def send_message(
        self,
        conv_id: str,
        sender_id: str,
        content: str,
        media_url: Optional[str] = None,
    ) -> Message:
        """
        Append a message and update the conversation summary.

        The message write, the last-message fields and the recipients'
        unread counters are committed in one batch.

        Raises:
            NotFoundError: If the conversation does not exist
        """
        conversation = await self._require_conversation(conv_id)
        recipients = [p for p in conversation.participants if p != sender_id]

        message = Message(
            conversation_id=conv_id,
            sender_id=sender_id,
            content=content,
            media_url=media_url,
            read_status={sender_id: True, **{r: False for r in recipients}},
        )

        summary: Dict[str, object] = {
            "lastMessage": content,
            "lastMessageTimestamp": message.timestamp,
            "lastMessageSenderId": sender_id,
        }
        for recipient in recipients:
            summary[f"unreadCounts.{recipient}"] = Increment(1)

        batch = self._store.batch()
        batch.set(messages_of(conv_id), message.id, MessageCodec.encode(message))
        batch.update(CONVERSATIONS, conv_id, summary)
        try:
            await batch.commit()
        except DocumentNotFoundError as e:
            raise NotFoundError(f"Conversation not found: {conv_id}") from e
        return message

    async def fetch_messages(self, conv_id: str) -> List[Message]:
        """Messages of a conversation, oldest first."""
        snapshots = await self._store.query(Query(messages_of(conv_id)).order("timestamp"))
        return _decode_messages(snapshots)

    async def mark_conversation_as_read(self, conv_id: str, user_id: str) -> int:
        """
        Mark every message unread by user_id as read and reset the user's
        unread counter, in one batch.

        Returns:
            Number of messages updated
        """
        unread = await self._store.query(
            Query(messages_of(conv_id)).where(f"readStatus.{user_id}", "==", False)
        )

        batch = self._store.batch()
        for snapshot in unread:
            batch.update(messages_of(conv_id), snapshot.id, {f"readStatus.{user_id}": True})
        batch.update(CONVERSATIONS, conv_id, {f"unreadCounts.{user_id}": 0})
        try:
            await batch.commit()
        except DocumentNotFoundError as e:
            raise NotFoundError(f"Conversation not found: {conv_id}") from e
        return len(unread)

    async def get_participants(self, conv_id: str, user_id: str) -> Dict[str, User]:
        """Resolved participants other than user_id, keyed by id."""
        conversation = await self._require_conversation(conv_id)
        others = [p for p in conversation.participants if p != user_id]
        return await self._users.get_many_as_map(others)

    # ============================================================
    # Listeners
    # ============================================================

    def listen_conversations(
        self,
        user_id: str,
        on_change: ConversationsCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ListenerRegistration:
        """Conversations of a user, most recent activity first, on every change."""
        query = (
            Query(CONVERSATIONS)
            .where("participants", "array_contains", user_id)
            .order("lastMessageTimestamp", descending=True)
        )
        return self._store.listen(
            query, lambda snapshots: on_change(_decode_conversations(snapshots)), on_error
        )

    def listen_messages(
        self,
        conv_id: str,
        on_change: MessagesCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ListenerRegistration:
        """Messages of a conversation, oldest first, on every change."""
        query = Query(messages_of(conv_id)).order("timestamp")
        return self._store.listen(
            query, lambda snapshots: on_change(_decode_messages(snapshots)), on_error
        )
