from support_chat.storage.faq_catalog import FaqCatalog
from support_chat.storage.models import FAQEntry, MessageRecord, SessionRecord
from support_chat.storage.session_manager import SessionManager
from support_chat.storage.store import ChatStore

__all__ = [
    "ChatStore",
    "FAQEntry",
    "FaqCatalog",
    "MessageRecord",
    "SessionManager",
    "SessionRecord",
]
