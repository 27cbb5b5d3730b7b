"""
auth/association.py -- Turns a request's cookies into the caller's paste association.

A browser session is a "session" log record. Its content may carry the
CustomURL the browser is currently associated with (a lightweight pseudo-account
scoped to one paste). The log is authoritative; the separate "associated" cookie
is only a client-side mirror that the resolver keeps in sync.

resolve() outcomes (in evaluation order):

  sessions disabled                     (False, "Sessions are disabled")
  no session-id cookie                  (False, "Session does not exist")
  session log missing                   (False, <clear session-id directive>)
  log associated, cookie differs        (True,  <associated=<url> directive>)
  log associated, cookie matches        (True,  <url>)
  log not associated, cookie present    (False, <clear associated directive>)
  neither                               (False, "")

When the value is a cookie directive, the caller must forward it as a
Set-Cookie header and must NOT treat the request as associated, even if the
flag is True. Association.identity encodes that rule so call sites never
inspect the string themselves.

This module is the only code that mutates a session's association pointer.
Every failure is soft: store errors come back as (False, reason).
"""

from __future__ import annotations

import logging
from typing import Mapping, NamedTuple, Optional

from auth.cookies import (
    ASSOCIATED_COOKIE,
    SESSION_COOKIE,
    associated_cookie,
    clear_associated_cookie,
    clear_session_cookie,
    decode_associated,
    is_cookie_directive,
    session_cookie,
)
from core.config import Settings
from logs.models import SessionRecord
from logs.store import LogStore

logger = logging.getLogger("entry.association")

SESSIONS_DISABLED = "Sessions are disabled"
SESSION_MISSING = "Session does not exist"


class Association(NamedTuple):
    """Result of resolving a request's association: (associated, value)."""

    associated: bool
    value: str

    @property
    def identity(self) -> Optional[str]:
        """The CustomURL the caller acts as, or None."""
        if not self.associated or is_cookie_directive(self.value):
            return None
        return self.value or None

    @property
    def set_cookie(self) -> Optional[str]:
        """The Set-Cookie directive to forward, or None."""
        return self.value if is_cookie_directive(self.value) else None


def is_plausible_browser(user_agent: str) -> bool:
    """Cheap bot filter applied before a session is issued."""
    return (
        user_agent.startswith("Mozilla/5.0")
        and not user_agent.startswith("Mozilla/5.0 (compatible")
        and "bot" not in user_agent
    )


class AssociationResolver:
    """Reads and updates the association carried by a browser session."""

    def __init__(self, logs: LogStore, settings: Settings) -> None:
        self.logs = logs
        self.settings = settings

    def _load(self, cookies: Mapping[str, str]) -> tuple[Optional[str], Optional[SessionRecord], Association]:
        """Return (session_id, record, failure). failure is meaningful only when record is None."""
        if not self.settings.sessions_enabled:
            return None, None, Association(False, SESSIONS_DISABLED)
        session_id = cookies.get(SESSION_COOKIE)
        if not session_id:
            return None, None, Association(False, SESSION_MISSING)
        found = self.logs.get_session(session_id)
        if not found.ok:
            return session_id, None, Association(False, found.message)
        if found.record is None:
            return session_id, None, Association(False, clear_session_cookie())
        return session_id, found.record, Association(False, "")

    def resolve(self, cookies: Mapping[str, str], source_ip: Optional[str] = None) -> Association:
        """Derive the caller's association from its session log and cookies.

        Read-only: calling it twice with the same cookies and no intervening
        update returns the same value. source_ip is only recorded by
        set_association().
        """
        _, record, failure = self._load(cookies)
        if record is None:
            return failure

        client_view = decode_associated(cookies.get(ASSOCIATED_COOKIE))
        if record.associated:
            if client_view != record.associated:
                return Association(True, associated_cookie(record.associated))
            return Association(True, record.associated)
        if client_view:
            return Association(False, clear_associated_cookie())
        return Association(False, "")

    def set_association(
        self,
        cookies: Mapping[str, str],
        custom_url: str,
        source_ip: Optional[str] = None,
    ) -> Association:
        """Point the caller's session at custom_url. Returns the mirroring directive."""
        session_id, record, failure = self._load(cookies)
        if record is None:
            return failure

        record.associated = custom_url
        if source_ip:
            record.ip = source_ip
        saved = self.logs.save_session(session_id, record)
        if not saved.ok:
            return Association(False, saved.message)
        logger.info("Session associated with %s", custom_url)
        return Association(True, associated_cookie(custom_url))

    def clear_association(self, cookies: Mapping[str, str]) -> Association:
        """Strip the association from the caller's session."""
        session_id, record, failure = self._load(cookies)
        if record is None:
            return failure

        previous = record.associated
        record.associated = None
        saved = self.logs.save_session(session_id, record)
        if not saved.ok:
            return Association(False, saved.message)
        if previous:
            logger.info("Session association with %s cleared", previous)
        return Association(True, clear_associated_cookie())

    def issue_session(self, cookies: Mapping[str, str], user_agent: str) -> Optional[str]:
        """Return a Set-Cookie directive for a page view, or None when nothing changes.

        A new session is issued only to plausible browsers without one. A cookie
        whose log no longer exists gets the clearing directive.
        """
        if not self.settings.sessions_enabled:
            return None

        session_id = cookies.get(SESSION_COOKIE)
        if not session_id:
            if not is_plausible_browser(user_agent):
                return None
            created = self.logs.create_session(SessionRecord(user_agent=user_agent))
            if not created.ok:
                return None
            return session_cookie(created.record.id)

        found = self.logs.get_log(session_id)
        if found.ok and found.record is None:
            return clear_session_cookie()
        return None

    def release(self, custom_url: str) -> int:
        """Detach every session associated with custom_url. Returns how many were released.

        Called after a paste is deleted. Each affected browser gets the
        clearing directive on its next resolve().
        """
        released = 0
        for log in self.logs.sessions_associated_with(custom_url):
            record = self.logs.get_session(log.id).record
            if record is None:
                continue
            record.associated = None
            if self.logs.save_session(log.id, record).ok:
                released += 1
        if released:
            logger.info("Released %d sessions associated with %s", released, custom_url)
        return released

    def move(self, old_url: str, new_url: str) -> int:
        """Re-point every session associated with old_url at new_url. Returns how many moved.

        Called after a paste is renamed so no session keeps an identity
        that a later paste could claim.
        """
        moved = 0
        for log in self.logs.sessions_associated_with(old_url):
            record = self.logs.get_session(log.id).record
            if record is None:
                continue
            record.associated = new_url
            if self.logs.save_session(log.id, record).ok:
                moved += 1
        if moved:
            logger.info("Moved %d sessions from %s to %s", moved, old_url, new_url)
        return moved
