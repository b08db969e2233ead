import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock

from support_chat.client.api_client import SupportChatApiError
from support_chat.client.conversation import APOLOGY_MESSAGE, ConversationView
from support_chat.client.shell import ChatShell


def _fake_client() -> MagicMock:
    client = MagicMock()
    client.send_message = AsyncMock()
    client.get_sessions = AsyncMock(return_value=[])
    client.get_history = AsyncMock(return_value=[])
    return client


class TestConversationView(unittest.TestCase):
    def setUp(self) -> None:
        self.client = _fake_client()
        self.view = ConversationView(client=self.client, user_id="user-1")

    def test_send_echoes_user_message_then_appends_reply(self) -> None:
        self.client.send_message.return_value = {"sessionId": "s1", "message": "Welcome!", "shouldEscalate": False}

        reply = asyncio.run(self.view.send("  hello  "))

        self.client.send_message.assert_awaited_once_with("user-1", "hello", session_id=None)
        self.assertEqual("Welcome!", reply.content)
        self.assertEqual(["user", "assistant"], [m.role for m in self.view.messages])
        self.assertTrue(self.view.messages[0].id.startswith("temp-"))
        self.assertEqual("hello", self.view.messages[0].content)
        self.assertEqual("s1", self.view.session_id)
        self.assertFalse(self.view.is_escalated)

    def test_session_id_is_reused_for_later_turns(self) -> None:
        self.client.send_message.return_value = {"sessionId": "s1", "message": "ok", "shouldEscalate": False}
        asyncio.run(self.view.send("first"))
        asyncio.run(self.view.send("second"))
        self.assertEqual("s1", self.client.send_message.await_args_list[1].kwargs["session_id"])

    def test_failed_send_appends_local_apology(self) -> None:
        self.client.send_message.side_effect = SupportChatApiError("Failed to send message (HTTP 500)", 500)

        reply = asyncio.run(self.view.send("hello"))

        self.assertEqual(APOLOGY_MESSAGE, reply.content)
        self.assertTrue(reply.id.startswith("error-"))
        self.assertEqual(["hello", APOLOGY_MESSAGE], [m.content for m in self.view.messages])
        self.assertIsNone(self.view.session_id)
        self.client.send_message.assert_awaited_once()

    def test_escalation_flag_is_tracked(self) -> None:
        self.client.send_message.return_value = {
            "sessionId": "s1",
            "message": "Connecting you",
            "shouldEscalate": True,
            "escalationReason": "User requested human agent",
        }
        asyncio.run(self.view.send("manager please"))
        self.assertTrue(self.view.is_escalated)

    def test_blank_input_is_ignored(self) -> None:
        self.assertIsNone(asyncio.run(self.view.send("   ")))
        self.client.send_message.assert_not_awaited()
        self.assertEqual([], self.view.messages)

    def test_load_replaces_transcript_from_server(self) -> None:
        self.view.messages = []
        self.client.get_history.return_value = [
            {"id": "m1", "role": "user", "content": "manager", "created_at": "t1", "metadata": None},
            {
                "id": "m2",
                "role": "assistant",
                "content": "Connecting you",
                "created_at": "t2",
                "metadata": {"escalation_triggered": True},
            },
        ]

        messages = asyncio.run(self.view.load("s9"))

        self.assertEqual("s9", self.view.session_id)
        self.assertEqual(["m1", "m2"], [m.id for m in messages])
        self.assertTrue(self.view.is_escalated)

    def test_reset_clears_state(self) -> None:
        self.view.session_id = "s1"
        self.view.is_escalated = True
        self.view.reset()
        self.assertIsNone(self.view.session_id)
        self.assertFalse(self.view.is_escalated)
        self.assertEqual([], self.view.messages)


class TestChatShell(unittest.TestCase):
    def setUp(self) -> None:
        self.client = _fake_client()
        self.lines: list[str] = []
        self.shell = ChatShell(self.client, "user-1", output=self.lines.append)

    def test_plain_text_is_sent_and_reply_printed(self) -> None:
        self.client.send_message.return_value = {"sessionId": "s1", "message": "Welcome!", "shouldEscalate": False}
        asyncio.run(self.shell.run("hello"))
        self.assertEqual(["assistant> Welcome!"], self.lines)

    def test_escalation_notice_printed_once(self) -> None:
        self.client.send_message.return_value = {"sessionId": "s1", "message": "Connecting", "shouldEscalate": True}
        asyncio.run(self.shell.run("manager"))
        asyncio.run(self.shell.run("still there?"))
        notices = [line for line in self.lines if "escalated to a human agent" in line]
        self.assertEqual(1, len(notices))

    def test_sessions_command_lists_rows(self) -> None:
        self.client.get_sessions.return_value = [
            {
                "id": "abcdef123456",
                "user_id": "user-1",
                "started_at": "2026-01-01T00:00:00.000+00:00",
                "last_activity_at": "2026-01-01T00:00:00.000+00:00",
                "status": "escalated",
                "escalated_reason": "User requested human agent",
            }
        ]
        asyncio.run(self.shell.run("/sessions"))
        self.client.get_sessions.assert_awaited_once_with("user-1")
        self.assertEqual(1, len(self.lines))
        self.assertIn("[Escalated]", self.lines[0])
        self.assertIn("abcdef12", self.lines[0])

    def test_sessions_command_reports_failure(self) -> None:
        self.client.get_sessions.side_effect = SupportChatApiError("Failed to fetch sessions (HTTP 500)", 500)
        asyncio.run(self.shell.run("/sessions"))
        self.assertEqual(["assistant> Could not load your conversations."], self.lines)

    def test_open_command_replays_history(self) -> None:
        self.client.get_history.return_value = [
            {"id": "m1", "role": "user", "content": "hello", "created_at": "t1"},
            {"id": "m2", "role": "assistant", "content": "Welcome!", "created_at": "t2"},
        ]
        asyncio.run(self.shell.run("/open s1"))
        self.client.get_history.assert_awaited_once_with("s1")
        self.assertEqual(["you> hello", "assistant> Welcome!"], self.lines[1:])
        self.assertEqual("s1", self.shell.conversation.session_id)

    def test_new_command_resets_conversation(self) -> None:
        self.shell.conversation.session_id = "s1"
        asyncio.run(self.shell.run("/new"))
        self.assertIsNone(self.shell.conversation.session_id)

    def test_unknown_command(self) -> None:
        asyncio.run(self.shell.run("/bogus"))
        self.assertIn("Unknown command: /bogus", self.lines[0])
        self.client.send_message.assert_not_awaited()
