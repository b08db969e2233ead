from __future__ import annotations

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

_TIMEOUT_SECONDS = 30
_READ_ATTEMPTS = 3


class SupportChatApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _on_retry(retry_state):
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying in {wait:.1f}s (attempt {attempt}/{_READ_ATTEMPTS})...")


_retry_reads = retry(
    retry=retry_if_exception_type(httpx.TransportError),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(_READ_ATTEMPTS),
    before_sleep=_on_retry,
    reraise=True,
)


class SupportChatClient:
    """HTTP client for the /chat, /sessions and /history endpoints.

    Only the read endpoints are retried. A failed chat turn is reported to the
    caller and never re-sent.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = _TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> SupportChatClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def send_message(self, user_id: str, message: str, session_id: str | None = None) -> dict:
        body: dict = {"userId": user_id, "message": message}
        if session_id:
            body["sessionId"] = session_id
        response = await self._client.post("/chat", json=body)
        return self._json_or_raise(response, "Failed to send message")

    @_retry_reads
    async def get_sessions(self, user_id: str) -> list[dict]:
        response = await self._client.get("/sessions", params={"userId": user_id})
        data = self._json_or_raise(response, "Failed to fetch sessions")
        return data.get("sessions") or []

    @_retry_reads
    async def get_history(self, session_id: str) -> list[dict]:
        response = await self._client.get("/history", params={"sessionId": session_id})
        data = self._json_or_raise(response, "Failed to fetch conversation history")
        return data.get("messages") or []

    def _json_or_raise(self, response: httpx.Response, message: str) -> dict:
        if response.status_code >= 400:
            detail = ""
            try:
                detail = response.json().get("error", "")
            except (ValueError, AttributeError):
                detail = response.text
            logger.debug(f"HTTP {response.status_code} from {response.request.url}: {detail}")
            raise SupportChatApiError(f"{message} (HTTP {response.status_code})", response.status_code)
        return response.json()
