"""
logs/models.py -- Domain dataclasses for log records and browser sessions.

Pattern: Data class. LogRecord mirrors one row of the logs table. SessionRecord
is the structured form of a session log's content; it is the only code that
knows the ";_ip;" and ";_with;" sentinels. Everything else works with fields.

Persisted session content shape:  "<ua>[;_ip;<ip>][;_with;<customURL>]"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

_IP_SENTINEL = ";_ip;"
_WITH_SENTINEL = ";_with;"

# Log event types. "session" records double as browser sessions.
LOG_TYPES = (
    "generic",
    "create_paste",
    "edit_paste",
    "delete_paste",
    "access_admin",
    "session",
    "error",
    "view_paste",
    "comment",
    "report",
    "custom_domain",
)


@dataclass
class LogRecord:
    """One append-only log entry. id doubles as the session cookie value for sessions."""

    id: str
    type: str
    content: str
    timestamp: int  # unix milliseconds


@dataclass
class SessionRecord:
    """Structured content of a "session" log.

    user_agent is the freeform field captured when the session was issued.
    associated is the CustomURL the session currently acts as, or None.
    """

    user_agent: str
    ip: Optional[str] = None
    associated: Optional[str] = None

    def to_content(self) -> str:
        content = self.user_agent
        if self.ip:
            content += f"{_IP_SENTINEL}{self.ip}"
        if self.associated:
            content += f"{_WITH_SENTINEL}{self.associated}"
        return content

    @classmethod
    def from_content(cls, content: str) -> "SessionRecord":
        head, _, associated = content.partition(_WITH_SENTINEL)
        user_agent, _, ip = head.partition(_IP_SENTINEL)
        return cls(user_agent=user_agent, ip=ip or None, associated=associated or None)
