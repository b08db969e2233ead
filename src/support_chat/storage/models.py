from __future__ import annotations

import json
from dataclasses import dataclass, field

SESSION_STATUSES = ("active", "resolved", "escalated")
MESSAGE_ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class SessionRecord:
    id: str
    user_id: str
    started_at: str
    last_activity_at: str
    status: str
    escalated_reason: str | None = None

    @classmethod
    def from_row(cls, row) -> SessionRecord:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            started_at=row["started_at"],
            last_activity_at=row["last_activity_at"],
            status=row["status"],
            escalated_reason=row["escalated_reason"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "started_at": self.started_at,
            "last_activity_at": self.last_activity_at,
            "status": self.status,
            "escalated_reason": self.escalated_reason,
        }


@dataclass(frozen=True)
class MessageRecord:
    id: str
    session_id: str
    seq: int
    role: str
    content: str
    created_at: str
    metadata_json: str | None = None

    @classmethod
    def from_row(cls, row) -> MessageRecord:
        return cls(
            id=row["id"],
            session_id=row["session_id"],
            seq=int(row["seq"]),
            role=row["role"],
            content=row["content"],
            created_at=row["created_at"],
            metadata_json=row["metadata_json"],
        )

    @property
    def metadata(self) -> dict | None:
        if not self.metadata_json:
            return None
        try:
            parsed = json.loads(self.metadata_json)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class FAQEntry:
    id: str
    question: str
    answer: str
    category: str
    keywords: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_row(cls, row) -> FAQEntry:
        keywords = json.loads(row["keywords_json"] or "[]")
        return cls(
            id=row["id"],
            question=row["question"],
            answer=row["answer"],
            category=row["category"],
            keywords=tuple(str(k) for k in keywords),
        )

    @classmethod
    def from_dict(cls, data: dict) -> FAQEntry:
        # An empty question or keyword is a substring of every message.
        for key in ("id", "question", "answer"):
            if not str(data.get(key) or "").strip():
                raise ValueError(f"FAQ entry is missing {key!r}: {data!r}")
        return cls(
            id=str(data["id"]),
            question=str(data["question"]),
            answer=str(data["answer"]),
            category=str(data.get("category") or "general"),
            keywords=tuple(str(k) for k in data.get("keywords") or () if str(k).strip()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "category": self.category,
            "keywords": list(self.keywords),
        }
