import asyncio
import json
import unittest

import httpx

from support_chat.client.api_client import SupportChatApiError, SupportChatClient


def _client(handler) -> SupportChatClient:
    return SupportChatClient(
        "http://support.test/functions/v1/support-chat/",
        "anon-key",
        transport=httpx.MockTransport(handler),
    )


async def _call(handler, method: str, *args, **kwargs):
    async with _client(handler) as client:
        return await getattr(client, method)(*args, **kwargs)


class TestSupportChatClient(unittest.TestCase):
    def test_send_message_posts_camel_case_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"sessionId": "s1", "message": "Hi!", "shouldEscalate": False})

        result = asyncio.run(_call(handler, "send_message", "user-1", "hello", session_id="s1"))

        self.assertEqual("s1", result["sessionId"])
        request = seen[0]
        self.assertEqual("POST", request.method)
        self.assertEqual("/functions/v1/support-chat/chat", request.url.path)
        self.assertEqual("Bearer anon-key", request.headers["Authorization"])
        self.assertEqual({"userId": "user-1", "message": "hello", "sessionId": "s1"}, json.loads(request.content))

    def test_send_message_omits_absent_session_id(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"sessionId": "new", "message": "ok", "shouldEscalate": False})

        asyncio.run(_call(handler, "send_message", "user-1", "hello"))
        self.assertNotIn("sessionId", bodies[0])

    def test_send_message_raises_on_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "database is locked"})

        with self.assertRaises(SupportChatApiError) as ctx:
            asyncio.run(_call(handler, "send_message", "user-1", "hello"))
        self.assertEqual(500, ctx.exception.status_code)

    def test_send_message_is_not_retried(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(httpx.ConnectError):
            asyncio.run(_call(handler, "send_message", "user-1", "hello"))
        self.assertEqual(1, len(calls))

    def test_get_sessions_passes_user_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual("/functions/v1/support-chat/sessions", request.url.path)
            self.assertEqual("user-1", request.url.params["userId"])
            return httpx.Response(200, json={"sessions": [{"id": "s1"}]})

        sessions = asyncio.run(_call(handler, "get_sessions", "user-1"))
        self.assertEqual([{"id": "s1"}], sessions)

    def test_get_history_tolerates_null_list(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual("s1", request.url.params["sessionId"])
            return httpx.Response(200, json={"messages": None})

        self.assertEqual([], asyncio.run(_call(handler, "get_history", "s1")))

    def test_get_history_retries_transport_errors(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json={"messages": [{"id": "m1"}]})

        messages = asyncio.run(_call(handler, "get_history", "s1"))
        self.assertEqual([{"id": "m1"}], messages)
        self.assertEqual(2, len(calls))

    def test_get_sessions_does_not_retry_http_errors(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(400, json={"error": "userId is required"})

        with self.assertRaises(SupportChatApiError) as ctx:
            asyncio.run(_call(handler, "get_sessions", ""))
        self.assertEqual(400, ctx.exception.status_code)
        self.assertEqual(1, len(calls))
