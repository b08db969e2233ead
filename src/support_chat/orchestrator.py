from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from support_chat.errors import InvalidRequest
from support_chat.response_engine import respond
from support_chat.storage.faq_catalog import FaqCatalog
from support_chat.storage.models import MessageRecord, SessionRecord
from support_chat.storage.session_manager import SessionManager
from support_chat.storage.store import ChatStore


@dataclass(frozen=True)
class TurnResult:
    session_id: str
    message: str
    should_escalate: bool
    escalation_reason: str | None = None

    def to_dict(self) -> dict:
        payload = {
            "sessionId": self.session_id,
            "message": self.message,
            "shouldEscalate": self.should_escalate,
        }
        if self.escalation_reason is not None:
            payload["escalationReason"] = self.escalation_reason
        return payload


class ConversationOrchestrator:
    def __init__(self, store: ChatStore, sessions: SessionManager, faqs: FaqCatalog):
        self._store = store
        self._sessions = sessions
        self._faqs = faqs

    def handle_turn(self, user_id: str | None, message: str | None, session_id: str | None = None) -> TurnResult:
        if not _present(user_id) or not _present(message):
            raise InvalidRequest("userId and message are required")

        with self._store.transaction():
            if session_id:
                self._sessions.touch_session(session_id)
                current_session_id = session_id
            else:
                current_session_id = self._sessions.create_session(user_id).id

            self._sessions.append_message(current_session_id, "user", message)
            history = self._sessions.load_history(current_session_id)
            reply = respond(message, history, self._faqs.list_entries())

            self._sessions.append_message(
                current_session_id,
                "assistant",
                reply.content,
                metadata=reply.metadata.to_dict(),
            )
            if reply.should_escalate:
                self._sessions.mark_escalated(current_session_id, reply.escalation_reason)

        logger.info(
            f"Turn handled: session={current_session_id}, rule={reply.metadata.kind}, "
            f"history={len(history)}, escalate={reply.should_escalate}"
        )
        return TurnResult(
            session_id=current_session_id,
            message=reply.content,
            should_escalate=reply.should_escalate,
            escalation_reason=reply.escalation_reason,
        )

    def list_sessions(self, user_id: str | None) -> list[SessionRecord]:
        if not _present(user_id):
            raise InvalidRequest("userId is required")
        return self._sessions.list_sessions(user_id)

    def load_history(self, session_id: str | None) -> list[MessageRecord]:
        if not _present(session_id):
            raise InvalidRequest("sessionId is required")
        return self._sessions.load_messages(session_id)


def _present(value: str | None) -> bool:
    return isinstance(value, str) and bool(value.strip())
