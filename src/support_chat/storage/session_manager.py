from __future__ import annotations

import json
from uuid import uuid4

from loguru import logger

from support_chat.errors import NotFound
from support_chat.storage.models import MESSAGE_ROLES, MessageRecord, SessionRecord
from support_chat.storage.store import ChatStore
from support_chat.storage.timestamps import utc_now


class SessionManager:
    def __init__(self, store: ChatStore):
        self._store = store

    def get_session(self, session_id: str) -> SessionRecord | None:
        row = self._store.execute(
            "SELECT * FROM sessions WHERE id = ? LIMIT 1",
            (session_id,),
        ).fetchone()
        if row is None:
            return None
        return SessionRecord.from_row(row)

    def require_session(self, session_id: str) -> SessionRecord:
        session = self.get_session(session_id)
        if session is None:
            raise NotFound(f"Session does not exist: {session_id}")
        return session

    def list_sessions(self, user_id: str, *, limit: int | None = None) -> list[SessionRecord]:
        rows = self._store.execute(
            """
            SELECT *
            FROM sessions
            WHERE user_id = ?
            ORDER BY last_activity_at DESC, started_at DESC, rowid DESC
            LIMIT ?
            """,
            (user_id, -1 if limit is None else max(1, limit)),
        ).fetchall()
        return [SessionRecord.from_row(row) for row in rows]

    def create_session(self, user_id: str, session_id: str | None = None) -> SessionRecord:
        sid = session_id or str(uuid4())
        now = utc_now()
        self._store.execute(
            """
            INSERT INTO sessions (id, user_id, started_at, last_activity_at, status)
            VALUES (?, ?, ?, ?, 'active')
            """,
            (sid, user_id, now, now),
        )
        self._store.commit()
        logger.debug(f"Session created: session={sid}, user={user_id}")
        return SessionRecord(
            id=sid,
            user_id=user_id,
            started_at=now,
            last_activity_at=now,
            status="active",
        )

    def touch_session(self, session_id: str) -> None:
        cursor = self._store.execute(
            "UPDATE sessions SET last_activity_at = ? WHERE id = ?",
            (utc_now(), session_id),
        )
        if cursor.rowcount == 0:
            raise NotFound(f"Session does not exist: {session_id}")
        self._store.commit()

    def mark_escalated(self, session_id: str, reason: str | None) -> bool:
        """Move an active session to escalated. Returns False if it was not active."""
        cursor = self._store.execute(
            """
            UPDATE sessions
            SET status = 'escalated', escalated_reason = ?
            WHERE id = ? AND status = 'active'
            """,
            (reason, session_id),
        )
        self._store.commit()
        if cursor.rowcount == 0:
            logger.debug(f"Session {session_id} not active; escalation skipped")
            return False
        logger.warning(f"Session escalated: session={session_id}, reason={reason!r}")
        return True

    def append_message(
        self,
        session_id: str,
        role: str,
        content: str,
        metadata: dict | None = None,
    ) -> MessageRecord:
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        row = self._store.execute(
            "SELECT COALESCE(MAX(seq), 0) AS max_seq FROM messages WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        next_seq = int(row["max_seq"]) + 1
        message_id = str(uuid4())
        now = utc_now()
        metadata_json = json.dumps(metadata, ensure_ascii=True) if metadata is not None else None
        self._store.execute(
            """
            INSERT INTO messages (id, session_id, seq, role, content, created_at, metadata_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (message_id, session_id, next_seq, role, content, now, metadata_json),
        )
        self._store.commit()
        return MessageRecord(
            id=message_id,
            session_id=session_id,
            seq=next_seq,
            role=role,
            content=content,
            created_at=now,
            metadata_json=metadata_json,
        )

    def load_messages(self, session_id: str) -> list[MessageRecord]:
        rows = self._store.execute(
            """
            SELECT *
            FROM messages
            WHERE session_id = ?
            ORDER BY seq ASC
            """,
            (session_id,),
        ).fetchall()
        return [MessageRecord.from_row(row) for row in rows]

    def load_history(self, session_id: str) -> list[dict]:
        rows = self._store.execute(
            "SELECT role, content FROM messages WHERE session_id = ? ORDER BY seq ASC",
            (session_id,),
        ).fetchall()
        return [{"role": row["role"], "content": row["content"]} for row in rows]
