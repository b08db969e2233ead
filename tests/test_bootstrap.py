import shutil
import unittest
from pathlib import Path
from uuid import uuid4

from support_chat.app_config import parse_app_config
from support_chat.bootstrap import bootstrap_runtime
from support_chat.logging_config import setup_logging

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class TestBootstrap(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"bootstrap-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def test_bootstrap_seeds_faqs_and_serves_turns(self) -> None:
        config = parse_app_config(
            {
                "DbPath": str(self._tmp_dir / "support.db"),
                "FaqSeedPath": str(PROJECT_ROOT / "data" / "faqs.json"),
                "LogConsumers": [{"type": "file", "path": str(self._tmp_dir / "test.log")}],
            }
        )
        runtime = bootstrap_runtime(config)
        try:
            self.assertTrue(runtime.faqs.list_entries())
            self.assertEqual(1, len(runtime.log_descriptions))
            result = runtime.orchestrator.handle_turn("user-1", "How can I track my order?")
            self.assertEqual("faq-track-order", runtime.sessions.load_messages(result.session_id)[-1].metadata["matched_faq_id"])
        finally:
            runtime.close()
            setup_logging(consumers=[])

    def test_setup_logging_skips_unknown_consumers(self) -> None:
        descriptions = setup_logging(
            level="DEBUG",
            consumers=[{"type": "carrier-pigeon"}, {"type": "file", "path": str(self._tmp_dir / "a.log"), "serialize": True}],
        )
        try:
            self.assertEqual(1, len(descriptions))
            self.assertIn("json", descriptions[0])
        finally:
            setup_logging(consumers=[])
