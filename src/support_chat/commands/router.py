from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_new: Callable[[], Awaitable[None]],
        on_sessions: Callable[[], Awaitable[None]],
        on_open: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_new = on_new
        self._on_sessions = on_sessions
        self._on_open = on_open
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command, _, argument = trimmed.partition(" ")
        if command == "/help":
            await self._on_help()
            return True
        if command == "/new":
            await self._on_new()
            return True
        if command == "/sessions":
            await self._on_sessions()
            return True
        if command == "/open":
            argument = argument.strip()
            if not argument:
                self._on_unknown(trimmed)
                return True
            await self._on_open(argument)
            return True

        self._on_unknown(trimmed)
        return True
