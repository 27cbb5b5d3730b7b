"""Unit tests for auth/association.py and auth/cookies.py.

Covers:
- the resolve() outcome table, including the three documented scenarios
- idempotence of resolve()
- set_association / clear_association directives and persistence
- issue_session() bot filter and stale-cookie clearing
- release() after a paste is deleted
- cookie directive formats, including non-ASCII URLs
"""

from auth.association import SESSION_MISSING, SESSIONS_DISABLED, AssociationResolver, is_plausible_browser
from auth.cookies import (
    ASSOCIATED_MAX_AGE,
    SESSION_MAX_AGE,
    associated_cookie,
    clear_associated_cookie,
    clear_session_cookie,
    decode_associated,
    is_cookie_directive,
    session_cookie,
)
from conftest import BROWSER_UA, make_settings, new_session
from logs.models import SessionRecord
from logs.store import LogStore

ATTRS = "SameSite=Strict; Secure; Path=/; HostOnly=true; HttpOnly=true"


class TestCookieFormats:
    def test_session_cookie(self):
        assert session_cookie("abc") == f"session-id=abc; {ATTRS}; Max-Age=5529600"
        assert SESSION_MAX_AGE == 64 * 24 * 60 * 60

    def test_associated_cookie(self):
        assert associated_cookie("alice") == f"associated=alice; {ATTRS}; Max-Age=31536000"
        assert ASSOCIATED_MAX_AGE == 365 * 24 * 60 * 60

    def test_clearing_forms(self):
        assert clear_session_cookie() == f"session-id=refresh; {ATTRS}; Max-Age=0"
        assert clear_associated_cookie() == f"associated=refresh; {ATTRS}; Max-Age=0"

    def test_grouped_url_keeps_slash(self):
        assert associated_cookie("team/notes").startswith("associated=team/notes;")

    def test_non_ascii_url_round_trips(self):
        directive = associated_cookie("café")
        value = directive.split(";", 1)[0].split("=", 1)[1]
        assert value.isascii()
        assert decode_associated(value) == "café"

    def test_directive_detection(self):
        assert is_cookie_directive(session_cookie("x"))
        assert is_cookie_directive(clear_associated_cookie())
        assert not is_cookie_directive("alice")
        assert not is_cookie_directive("")
        assert not is_cookie_directive(None)


class TestResolve:
    def test_no_session_cookie(self, resolver: AssociationResolver):
        """Session cookie absent -> (False, "Session does not exist")."""
        assert tuple(resolver.resolve({})) == (False, SESSION_MISSING)

    def test_log_associated_cookie_absent(self, resolver: AssociationResolver, log_store: LogStore):
        """Associated in the log, no mirror cookie -> corrective directive, no identity."""
        sid = new_session(log_store, associated="alice")
        association = resolver.resolve({"session-id": sid})
        assert association.associated is True
        assert association.value == associated_cookie("alice")
        assert association.identity is None
        assert association.set_cookie == associated_cookie("alice")

    def test_log_and_cookie_agree(self, resolver: AssociationResolver, log_store: LogStore):
        """Associated in the log, matching cookie -> (True, "alice"), nothing to set."""
        sid = new_session(log_store, associated="alice")
        association = resolver.resolve({"session-id": sid, "associated": "alice"})
        assert tuple(association) == (True, "alice")
        assert association.identity == "alice"
        assert association.set_cookie is None

    def test_cookie_differs_from_log(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store, associated="alice")
        association = resolver.resolve({"session-id": sid, "associated": "mallory"})
        assert association.value == associated_cookie("alice")
        assert association.identity is None

    def test_unknown_session_clears_cookie(self, resolver: AssociationResolver):
        association = resolver.resolve({"session-id": "does-not-exist"})
        assert tuple(association) == (False, clear_session_cookie())

    def test_stale_associated_cookie_is_cleared(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store)
        association = resolver.resolve({"session-id": sid, "associated": "alice"})
        assert tuple(association) == (False, clear_associated_cookie())

    def test_unassociated(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store)
        assert tuple(resolver.resolve({"session-id": sid})) == (False, "")

    def test_sessions_disabled(self, log_store: LogStore):
        resolver = AssociationResolver(log_store, make_settings(log_events=["create_paste"]))
        sid = new_session(log_store, associated="alice")
        assert tuple(resolver.resolve({"session-id": sid, "associated": "alice"})) == (False, SESSIONS_DISABLED)

    def test_idempotent(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store, associated="alice")
        cookies = {"session-id": sid}
        assert resolver.resolve(cookies) == resolver.resolve(cookies)
        cookies["associated"] = "alice"
        assert resolver.resolve(cookies).identity == resolver.resolve(cookies).identity == "alice"

    def test_non_ascii_cookie_matches(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store, associated="café")
        quoted = associated_cookie("café").split(";", 1)[0].split("=", 1)[1]
        assert resolver.resolve({"session-id": sid, "associated": quoted}).identity == "café"


class TestUpdates:
    def test_set_association_persists(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store)
        update = resolver.set_association({"session-id": sid}, "bob", "10.0.0.2")
        assert tuple(update) == (True, associated_cookie("bob"))
        record = log_store.get_session(sid).record
        assert record.associated == "bob"
        assert record.ip == "10.0.0.2"
        assert resolver.resolve({"session-id": sid, "associated": "bob"}).identity == "bob"

    def test_set_association_without_session(self, resolver: AssociationResolver):
        assert tuple(resolver.set_association({}, "bob")) == (False, SESSION_MISSING)

    def test_clear_association(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store, associated="bob")
        cleared = resolver.clear_association({"session-id": sid, "associated": "bob"})
        assert tuple(cleared) == (True, clear_associated_cookie())
        assert log_store.get_session(sid).record.associated is None

    def test_release(self, resolver: AssociationResolver, log_store: LogStore):
        first = new_session(log_store, associated="gone")
        second = new_session(log_store, associated="gone")
        other = new_session(log_store, associated="kept")
        assert resolver.release("gone") == 2
        assert log_store.get_session(first).record.associated is None
        assert log_store.get_session(second).record.associated is None
        assert log_store.get_session(other).record.associated == "kept"


class TestIssueSession:
    def test_browser_gets_session(self, resolver: AssociationResolver, log_store: LogStore):
        directive = resolver.issue_session({}, BROWSER_UA)
        assert directive.startswith("session-id=")
        session_id = directive.split(";", 1)[0].split("=", 1)[1]
        assert log_store.get_session(session_id).record == SessionRecord(user_agent=BROWSER_UA)

    def test_bots_get_nothing(self, resolver: AssociationResolver, log_store: LogStore):
        assert resolver.issue_session({}, "curl/8.0") is None
        assert resolver.issue_session({}, "Mozilla/5.0 (compatible; Googlebot/2.1)") is None
        assert log_store.count_logs(log_type="session") == 0

    def test_existing_session_untouched(self, resolver: AssociationResolver, log_store: LogStore):
        sid = new_session(log_store)
        assert resolver.issue_session({"session-id": sid}, BROWSER_UA) is None

    def test_stale_session_cleared(self, resolver: AssociationResolver):
        assert resolver.issue_session({"session-id": "gone"}, BROWSER_UA) == clear_session_cookie()

    def test_plausible_browser(self):
        assert is_plausible_browser(BROWSER_UA)
        assert not is_plausible_browser("Mozilla/5.0 (X11) somebot/1.0")
        assert not is_plausible_browser("python-requests/2.32")
