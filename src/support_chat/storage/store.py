from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger

from support_chat.errors import PersistenceFailure


class ChatStore:
    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._lock = threading.RLock()
        self._depth = 0
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._initialize_schema()
        except sqlite3.Error as ex:
            raise PersistenceFailure(str(ex)) from ex

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(query, params)
            except sqlite3.Error as ex:
                raise PersistenceFailure(str(ex)) from ex

    def commit(self) -> None:
        with self._lock:
            # Deferred to the outermost transaction() block.
            if self._depth:
                return
            try:
                self._conn.commit()
            except sqlite3.Error as ex:
                raise PersistenceFailure(str(ex)) from ex

    def rollback(self) -> None:
        with self._lock:
            self._conn.rollback()

    @contextmanager
    def transaction(self) -> Iterator[ChatStore]:
        """Run a multi-statement write as one unit.

        Other threads block until the block exits. Nested blocks join the
        outer one. Any exception rolls back everything written in the block.
        """
        with self._lock:
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    logger.debug("Rolling back transaction")
                    self._conn.rollback()
                raise
            self._depth -= 1
            if self._depth == 0:
                try:
                    self.commit()
                except PersistenceFailure:
                    self._conn.rollback()
                    raise

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                started_at TEXT NOT NULL,
                last_activity_at TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active'
                    CHECK (status IN ('active', 'resolved', 'escalated')),
                escalated_reason TEXT NULL
            );

            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
                content TEXT NOT NULL,
                created_at TEXT NOT NULL,
                metadata_json TEXT NULL,
                UNIQUE(session_id, seq)
            );

            CREATE TABLE IF NOT EXISTS faqs (
                id TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                question TEXT NOT NULL,
                answer TEXT NOT NULL,
                category TEXT NOT NULL,
                keywords_json TEXT NOT NULL DEFAULT '[]'
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_user_activity
                ON sessions(user_id, last_activity_at);
            CREATE INDEX IF NOT EXISTS idx_messages_session_seq
                ON messages(session_id, seq);
            CREATE INDEX IF NOT EXISTS idx_faqs_position
                ON faqs(position);
            """
        )
        self._conn.commit()
