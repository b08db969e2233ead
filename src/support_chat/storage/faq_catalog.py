from __future__ import annotations

import json
import time
from pathlib import Path

from loguru import logger

from support_chat.storage.models import FAQEntry
from support_chat.storage.store import ChatStore


class FaqCatalog:
    """Question/answer entries read by the response engine.

    With ``cache_ttl_seconds == 0`` every call to :meth:`list_entries` reads the
    table again, so edits to the catalog are visible on the next turn.
    """

    def __init__(self, store: ChatStore, *, cache_ttl_seconds: float = 0):
        self._store = store
        self._cache_ttl_seconds = max(0.0, float(cache_ttl_seconds))
        self._cached: list[FAQEntry] | None = None
        self._cached_at = 0.0

    def list_entries(self) -> list[FAQEntry]:
        if self._cached is not None and self._cache_ttl_seconds > 0:
            if time.monotonic() - self._cached_at < self._cache_ttl_seconds:
                return list(self._cached)

        rows = self._store.execute(
            "SELECT * FROM faqs ORDER BY position ASC, id ASC",
        ).fetchall()
        entries = [FAQEntry.from_row(row) for row in rows]
        if self._cache_ttl_seconds > 0:
            self._cached = entries
            self._cached_at = time.monotonic()
        return list(entries)

    def invalidate(self) -> None:
        self._cached = None

    def categories(self) -> list[str]:
        return distinct_categories(self.list_entries())

    def upsert(self, entry: FAQEntry) -> None:
        row = self._store.execute(
            "SELECT position FROM faqs WHERE id = ? LIMIT 1",
            (entry.id,),
        ).fetchone()
        if row is not None:
            position = int(row["position"])
        else:
            max_row = self._store.execute(
                "SELECT COALESCE(MAX(position), 0) AS max_pos FROM faqs",
            ).fetchone()
            position = int(max_row["max_pos"]) + 1
        self._store.execute(
            """
            INSERT OR REPLACE INTO faqs (id, position, question, answer, category, keywords_json)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                position,
                entry.question,
                entry.answer,
                entry.category,
                json.dumps(list(entry.keywords), ensure_ascii=True),
            ),
        )
        self._store.commit()
        self.invalidate()

    def load_seed_file(self, path: str) -> int:
        seed_path = Path(path)
        with open(seed_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"FAQ seed file must contain a JSON array: {seed_path}")

        with self._store.transaction():
            for item in data:
                self.upsert(FAQEntry.from_dict(item))
        logger.info(f"Loaded {len(data)} FAQ entries from {seed_path}")
        return len(data)


def distinct_categories(entries: list[FAQEntry]) -> list[str]:
    seen: list[str] = []
    for entry in entries:
        if entry.category not in seen:
            seen.append(entry.category)
    return seen
