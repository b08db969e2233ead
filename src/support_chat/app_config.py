from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class RuntimeEnv:
    api_token: str | None


@dataclass
class AppConfig:
    db_path: str
    faq_seed_path: str | None
    faq_cache_ttl_seconds: float
    host: str
    port: int
    api_prefix: str
    api_base_url: str
    user_id: str | None
    request_timeout_seconds: float
    log_level: str
    log_consumers: list | None


def load_json_config(path: str | None = None) -> dict:
    config_path = Path(path) if path else Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _normalize_prefix(value: object) -> str:
    prefix = str(value or "").strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def parse_app_config(config: dict) -> AppConfig:
    host = str(config.get("Host", "127.0.0.1"))
    port = int(config.get("Port", 8000))
    api_prefix = _normalize_prefix(config.get("ApiPrefix", ""))
    return AppConfig(
        db_path=str(config.get("DbPath", ".support_chat/support.db")),
        faq_seed_path=str(config.get("FaqSeedPath", "")).strip() or None,
        faq_cache_ttl_seconds=float(config.get("FaqCacheTtlSeconds", 0)),
        host=host,
        port=port,
        api_prefix=api_prefix,
        api_base_url=str(config.get("ApiBaseUrl", f"http://{host}:{port}{api_prefix}")).rstrip("/"),
        user_id=str(config.get("UserId", "")).strip() or None,
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 30)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        api_token=os.environ.get("SUPPORT_CHAT_API_TOKEN") or None,
    )
