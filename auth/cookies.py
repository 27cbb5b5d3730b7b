"""
auth/cookies.py -- Set-Cookie directive builders for the session and association cookies.

The directive strings are a wire contract shared with existing clients and must
not change shape. Two cookies exist:

  session-id=<log id>       64 days, issued on HTML page views
  associated=<CustomURL>    1 year, mirrors the session log's association

Both share the same attribute tail. The clearing form keeps the attributes and
sets the value to "refresh" with Max-Age=0.

Associated URLs are percent-encoded so non-ASCII CustomURLs still produce a
valid cookie value; decode_associated() reverses it on the way in.
"""

from __future__ import annotations

from urllib.parse import quote, unquote

SESSION_COOKIE = "session-id"
ASSOCIATED_COOKIE = "associated"

SESSION_MAX_AGE = 60 * 60 * 24 * 64
ASSOCIATED_MAX_AGE = 60 * 60 * 24 * 365

_ATTRIBUTES = "SameSite=Strict; Secure; Path=/; HostOnly=true; HttpOnly=true"
_CLEARED_VALUE = "refresh"

_DIRECTIVE_PREFIXES = (f"{ASSOCIATED_COOKIE}=", f"{SESSION_COOKIE}=")


def _directive(name: str, value: str, max_age: int) -> str:
    return f"{name}={value}; {_ATTRIBUTES}; Max-Age={max_age}"


def session_cookie(session_id: str) -> str:
    return _directive(SESSION_COOKIE, session_id, SESSION_MAX_AGE)


def clear_session_cookie() -> str:
    return _directive(SESSION_COOKIE, _CLEARED_VALUE, 0)


def associated_cookie(custom_url: str) -> str:
    # "/" is left as is: grouped pastes are addressed as "<group>/<name>".
    return _directive(ASSOCIATED_COOKIE, quote(custom_url, safe="/:"), ASSOCIATED_MAX_AGE)


def clear_associated_cookie() -> str:
    return _directive(ASSOCIATED_COOKIE, _CLEARED_VALUE, 0)


def decode_associated(value: str | None) -> str | None:
    """Return the CustomURL carried by a raw associated cookie value."""
    if not value:
        return None
    return unquote(value)


def is_cookie_directive(value: str | None) -> bool:
    """True when value is a Set-Cookie directive rather than an identity."""
    return bool(value) and value.startswith(_DIRECTIVE_PREFIXES)
