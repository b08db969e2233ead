from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from support_chat.app_config import AppConfig
from support_chat.logging_config import setup_logging
from support_chat.orchestrator import ConversationOrchestrator
from support_chat.storage import ChatStore, FaqCatalog, SessionManager


@dataclass
class AppRuntime:
    store: ChatStore
    sessions: SessionManager
    faqs: FaqCatalog
    orchestrator: ConversationOrchestrator
    log_descriptions: list[str] = field(default_factory=list)

    def close(self) -> None:
        self.store.close()


def build_runtime(
    db_path: str,
    *,
    faq_seed_path: str | None = None,
    faq_cache_ttl_seconds: float = 0,
) -> AppRuntime:
    store = ChatStore(db_path)
    sessions = SessionManager(store)
    faqs = FaqCatalog(store, cache_ttl_seconds=faq_cache_ttl_seconds)
    if faq_seed_path:
        faqs.load_seed_file(faq_seed_path)
    return AppRuntime(
        store=store,
        sessions=sessions,
        faqs=faqs,
        orchestrator=ConversationOrchestrator(store, sessions, faqs),
    )


def bootstrap_runtime(app: AppConfig, *, configure_logging: bool = True) -> AppRuntime:
    log_descriptions: list[str] = []
    if configure_logging:
        log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    db_path = app.db_path
    if db_path != ":memory:" and not Path(db_path).is_absolute():
        db_path = str(Path.cwd() / db_path)

    runtime = build_runtime(
        db_path,
        faq_seed_path=app.faq_seed_path,
        faq_cache_ttl_seconds=app.faq_cache_ttl_seconds,
    )
    runtime.log_descriptions = log_descriptions
    logger.info(f"Store ready at {db_path} ({len(runtime.faqs.list_entries())} FAQ entries)")
    return runtime
