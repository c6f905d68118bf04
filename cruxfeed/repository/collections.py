"""Collection paths used by the repositories."""

from cruxfeed.domain.shared.ports.document_store import sub_collection

ACTIVITY_ITEMS = "activityItems"
USERS = "users"
USER_RELATIONSHIPS = "userRelationships"
GYMS = "gyms"
GYM_ADMINISTRATORS = "gymAdministrators"
USER_FAVORITES = "userFavorites"
GYM_VISITS = "gymVisits"
NOTIFICATIONS = "notifications"
CONVERSATIONS = "conversations"


def likes_of(item_id: str) -> str:
    return sub_collection(ACTIVITY_ITEMS, item_id, "likes")


def comments_of(item_id: str) -> str:
    return sub_collection(ACTIVITY_ITEMS, item_id, "comments")


def messages_of(conversation_id: str) -> str:
    return sub_collection(CONVERSATIONS, conversation_id, "messages")
