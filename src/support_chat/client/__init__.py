from support_chat.client.api_client import SupportChatApiError, SupportChatClient
from support_chat.client.conversation import APOLOGY_MESSAGE, ConversationView, LocalMessage
from support_chat.client.session_list import SessionListView, relative_time_label, status_badge

__all__ = [
    "APOLOGY_MESSAGE",
    "ConversationView",
    "LocalMessage",
    "SessionListView",
    "SupportChatApiError",
    "SupportChatClient",
    "relative_time_label",
    "status_badge",
]
