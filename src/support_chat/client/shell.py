from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from support_chat.client.api_client import SupportChatClient
from support_chat.client.conversation import ConversationView
from support_chat.client.session_list import SessionListView
from support_chat.commands.router import CommandRouter

_HELP_LINES = [
    "/help              show this help",
    "/new               start a new conversation",
    "/sessions          list your conversations (most recent first)",
    "/open <session-id> reopen a conversation and show its history",
]


class ChatShell:
    _LINE_PREFIX = "assistant> "
    _USER_PROMPT = "you> "

    def __init__(
        self,
        client: SupportChatClient,
        user_id: str,
        *,
        output: Callable[[str], None] = print,
    ) -> None:
        self._client = client
        self._user_id = user_id
        self._output = output
        self._conversation = ConversationView(client=client, user_id=user_id)
        self._session_list = SessionListView(line_prefix=self._LINE_PREFIX)
        self._escalation_notice_shown = False
        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_new=self._on_new,
            on_sessions=self._on_sessions,
            on_open=self._on_open,
            on_unknown=self._on_unknown,
        )

    @property
    def conversation(self) -> ConversationView:
        return self._conversation

    @property
    def user_prompt(self) -> str:
        return self._USER_PROMPT

    async def run(self, user_input: str) -> None:
        if await self._command_router.try_handle(user_input):
            return

        reply = await self._conversation.send(user_input)
        if reply is None:
            return
        self._output(f"{self._LINE_PREFIX}{reply.content}")
        self._maybe_show_escalation_notice()

    def _maybe_show_escalation_notice(self) -> None:
        if self._conversation.is_escalated and not self._escalation_notice_shown:
            self._output(f"{self._LINE_PREFIX}This conversation has been escalated to a human agent.")
            self._escalation_notice_shown = True

    async def _on_help(self) -> None:
        for line in _HELP_LINES:
            self._output(f"{self._LINE_PREFIX}{line}")

    async def _on_new(self) -> None:
        self._conversation.reset()
        self._escalation_notice_shown = False
        self._output(f"{self._LINE_PREFIX}Started a new conversation.")

    async def _on_sessions(self) -> None:
        try:
            sessions = await self._client.get_sessions(self._user_id)
        except Exception as ex:
            logger.error(f"Failed to load sessions: {ex}")
            self._output(f"{self._LINE_PREFIX}Could not load your conversations.")
            return
        for line in self._session_list.format_rows(sessions, active_session_id=self._conversation.session_id):
            self._output(line)

    async def _on_open(self, session_id: str) -> None:
        try:
            messages = await self._conversation.load(session_id)
        except Exception as ex:
            logger.error(f"Failed to load history: {ex}")
            self._output(f"{self._LINE_PREFIX}Could not load that conversation.")
            return

        self._escalation_notice_shown = False
        self._output(f"{self._LINE_PREFIX}Resumed conversation {self._session_list.short_id(session_id)}.")
        for message in messages:
            prefix = self._USER_PROMPT if message.role == "user" else self._LINE_PREFIX
            self._output(f"{prefix}{message.content}")
        self._maybe_show_escalation_notice()

    def _on_unknown(self, command: str) -> None:
        self._output(f"{self._LINE_PREFIX}Unknown command: {command}. Type /help for commands.")
