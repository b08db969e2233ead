from __future__ import annotations

import itertools
from dataclasses import dataclass, field

from loguru import logger

from support_chat.client.api_client import SupportChatClient
from support_chat.storage.timestamps import utc_now

APOLOGY_MESSAGE = "Sorry, I encountered an error. Please try again."


@dataclass
class LocalMessage:
    id: str
    role: str
    content: str
    created_at: str
    metadata: dict | None = None

    @classmethod
    def from_api(cls, data: dict) -> LocalMessage:
        return cls(
            id=str(data.get("id", "")),
            role=str(data.get("role", "assistant")),
            content=str(data.get("content", "")),
            created_at=str(data.get("created_at", "")),
            metadata=data.get("metadata"),
        )


@dataclass
class ConversationView:
    """Client-side transcript of one conversation.

    The user's message is shown before the server answers. Server-confirmed
    ids are not reconciled back into local entries; replies are appended after.
    """

    client: SupportChatClient
    user_id: str
    session_id: str | None = None
    messages: list[LocalMessage] = field(default_factory=list)
    is_escalated: bool = False
    _counter: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)

    def reset(self) -> None:
        self.session_id = None
        self.messages = []
        self.is_escalated = False

    async def load(self, session_id: str) -> list[LocalMessage]:
        history = await self.client.get_history(session_id)
        self.session_id = session_id
        self.messages = [LocalMessage.from_api(item) for item in history]
        self.is_escalated = any(
            (m.metadata or {}).get("escalation_triggered") for m in self.messages
        )
        return self.messages

    async def send(self, text: str) -> LocalMessage | None:
        """Send one turn. Returns the appended reply, or None for blank input."""
        trimmed = text.strip()
        if not trimmed:
            return None

        self.messages.append(self._local("temp", "user", trimmed))
        try:
            response = await self.client.send_message(self.user_id, trimmed, session_id=self.session_id)
        except Exception as ex:
            logger.error(f"Failed to send message: {ex}")
            apology = self._local("error", "assistant", APOLOGY_MESSAGE)
            self.messages.append(apology)
            return apology

        if not self.session_id and response.get("sessionId"):
            self.session_id = response["sessionId"]

        reply = self._local("assistant", "assistant", str(response.get("message", "")))
        self.messages.append(reply)
        if response.get("shouldEscalate"):
            self.is_escalated = True
        return reply

    def _local(self, prefix: str, role: str, content: str) -> LocalMessage:
        return LocalMessage(
            id=f"{prefix}-{next(self._counter)}",
            role=role,
            content=content,
            created_at=utc_now(),
        )
