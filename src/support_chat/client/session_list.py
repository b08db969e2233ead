from __future__ import annotations

from datetime import UTC, datetime

from support_chat.storage.timestamps import parse_timestamp

_STATUS_BADGES = {
    "active": "Active",
    "resolved": "Resolved",
    "escalated": "Escalated",
}


def relative_time_label(timestamp: str, now: datetime | None = None) -> str:
    moment = parse_timestamp(timestamp)
    now = now or datetime.now(UTC)
    diff_seconds = max((now - moment).total_seconds(), 0)
    minutes = int(diff_seconds // 60)
    hours = int(diff_seconds // 3600)
    days = int(diff_seconds // 86400)

    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return moment.date().isoformat()


def status_badge(status: str) -> str:
    return _STATUS_BADGES.get(status, "Active")


def sort_sessions(sessions: list[dict]) -> list[dict]:
    return sorted(sessions, key=lambda s: parse_timestamp(s["last_activity_at"]), reverse=True)


class SessionListView:
    def __init__(self, *, line_prefix: str = "", short_id_len: int = 8):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    def format_row(self, session: dict, *, active_session_id: str | None = None, now: datetime | None = None) -> str:
        marker = "*" if session["id"] == active_session_id else " "
        row = (
            f"{self._line_prefix}{marker} [{status_badge(session['status'])}] "
            f"{self.short_id(session['id'])} (id={session['id']}) "
            f"last active {relative_time_label(session['last_activity_at'], now)}"
        )
        reason = session.get("escalated_reason")
        if reason:
            row += f" - {reason}"
        return row

    def format_rows(
        self,
        sessions: list[dict],
        *,
        active_session_id: str | None = None,
        now: datetime | None = None,
    ) -> list[str]:
        if not sessions:
            return [f"{self._line_prefix}No conversations yet. Type a message to start one."]
        return [
            self.format_row(session, active_session_id=active_session_id, now=now)
            for session in sort_sessions(sessions)
        ]
