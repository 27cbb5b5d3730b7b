"""
pastes/service.py -- Paste lifecycle orchestration.

PasteService composes the paste store, the log store, the association
resolver and the access evaluator. Route handlers call exactly one method
per request and translate the returned Outcome into HTTP.

Every method returns an Outcome: the Result contract ([ok, message, record])
plus the Set-Cookie directive the HTTP layer must forward, if any. Nothing
raises past this boundary; store failures come back as failed Results.

Association side effects:
  create_paste   may associate an anonymous session with the new paste before
                 inserting it. If the insert then fails, the association is
                 cleared again so a session never points at a paste that was
                 never created.
  edit_paste     moves the caller's association when the paste it is
                 associated with is renamed, only after the rename succeeded.
  associate /
  disassociate   paste login / logout.

Authorization is checked, then the mutation is applied in a separate store
call. There is no transaction spanning both.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import secrets
import time
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple, Optional

from auth.access import Operation, admin_hash, authorize, is_admin
from auth.association import AssociationResolver
from auth.crypto import create_hash, encrypt
from core.config import Settings
from core.models import (
    CUSTOM_URL_PATTERN,
    MAX_CONTENT_LENGTH,
    MAX_CUSTOM_URL_LENGTH,
    MAX_PASSWORD_LENGTH,
    MIN_CONTENT_LENGTH,
    MIN_CUSTOM_URL_LENGTH,
    MIN_PASSWORD_LENGTH,
    RESERVED_NAMES,
    VERSION_PASTE_GROUP,
    VERSION_PASTE_URL,
    Result,
)
from logs.store import LogStore
from pastes import remote
from pastes.metadata import metadata_from_dict, metadata_to_dict
from pastes.models import EncryptionInfo, Paste, PasteMetadata
from pastes.store import ALREADY_EXISTS, PasteStore

logger = logging.getLogger("entry.pastes")

PASTE_MISSING = "This paste does not exist!"
NOT_EDITABLE_HINT = "paste is not editable!"

# Largest unix-ms timestamp a SQLite INTEGER column can hold.
MAX_TIMESTAMP_MS = 2**63 - 1

_URL_RE = re.compile(CUSTOM_URL_PATTERN)
_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9]([a-z0-9\-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")

# Metadata keys only the instance admin may change.
_ADMIN_ONLY_KEYS = ("Owner", "Locked")
# Thread structure is fixed at creation.
_THREAD_KEYS = ("IsCommentOn", "ParentCommentOn")


class Outcome(NamedTuple):
    result: Result
    set_cookie: Optional[str] = None
    # Only set by create_paste: the plaintext edit password to show once.
    edit_code: Optional[str] = None


@dataclass
class PasteSubmission:
    """Form fields of a paste creation request."""

    content: str
    custom_url: str = ""
    edit_password: str = ""
    view_password: str = ""
    group_name: str = ""
    group_submit_password: str = ""
    is_editable: bool = True
    expire_on: Optional[int] = None  # unix ms
    comment_on: str = ""
    report_on: str = ""


@dataclass
class PasteEdit:
    """Form fields of a paste edit request. Empty new_* fields keep the current value."""

    old_url: str
    old_edit_password: str
    new_content: str = ""
    new_url: str = ""
    new_edit_password: str = ""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _check_length(label: str, value: str, minimum: int, maximum: int) -> Optional[str]:
    if len(value) >= maximum:
        return f"{label} must be less than {maximum} characters!"
    if len(value) <= minimum:
        return f"{label} must be more than {minimum} characters!"
    return None


def _validate_submission(sub: PasteSubmission) -> Optional[str]:
    """Return the first validation error for a new paste, or None."""
    checks = [
        ("Content", sub.content, MIN_CONTENT_LENGTH, MAX_CONTENT_LENGTH),
        ("Custom URL", sub.custom_url, MIN_CUSTOM_URL_LENGTH, MAX_CUSTOM_URL_LENGTH),
    ]
    if sub.edit_password:
        checks.append(("Edit password", sub.edit_password, MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH))
    if sub.view_password:
        checks.append(("View password", sub.view_password, MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH))
    if sub.group_name:
        checks.append(("Group name", sub.group_name, MIN_CUSTOM_URL_LENGTH, MAX_CUSTOM_URL_LENGTH))
    if sub.group_submit_password:
        checks.append(
            ("Group submit password", sub.group_submit_password, MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH)
        )
    for label, value, minimum, maximum in checks:
        error = _check_length(label, value, minimum, maximum)
        if error:
            return error

    if not _URL_RE.match(sub.custom_url):
        return f"Custom URL does not pass test: {CUSTOM_URL_PATTERN}"
    if sub.group_name and not _URL_RE.match(sub.group_name):
        return f"Group name does not pass test: {CUSTOM_URL_PATTERN}"
    if sub.group_name and not sub.group_submit_password:
        return "There must be a group submit password provided if there is a group name provided!"
    if sub.group_submit_password and not sub.group_name:
        return "There must be a group name provided if there is a group submit password provided!"
    if sub.group_name in RESERVED_NAMES[:-1] or sub.group_name == VERSION_PASTE_GROUP:
        return f"Group name cannot be any of the following: {list(RESERVED_NAMES)}"
    if sub.group_name and sub.custom_url in RESERVED_NAMES:
        return f"Paste name cannot be any of the following: {list(RESERVED_NAMES)}"
    if sub.custom_url in ("group", VERSION_PASTE_URL):
        return f'The custom URL "{sub.custom_url}" is reserved!'
    if sub.expire_on is not None and sub.expire_on > MAX_TIMESTAMP_MS:
        return "Invalid expiry date!"
    if sub.expire_on is not None and sub.expire_on <= _now_ms():
        return "Expiry date must be in the future!"
    return None


class PasteService:
    """Paste operations with authorization, association and logging applied."""

    def __init__(
        self,
        store: PasteStore,
        logs: LogStore,
        resolver: AssociationResolver,
        settings: Settings,
    ) -> None:
        self.store = store
        self.logs = logs
        self.resolver = resolver
        self.settings = settings

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _log(self, event: str, content: str) -> None:
        if self.settings.log_enabled(event):
            self.logs.create_log(event, content)

    def _load(self, custom_url: str) -> Result:
        """Fetch a local paste by (case-insensitive) URL. Fails with PASTE_MISSING."""
        found = self.store.get_paste(custom_url.lower())
        if not found.ok:
            return found
        if found.record is None:
            return Result(False, PASTE_MISSING)
        return found

    def _decorate(self, paste: Paste) -> Paste:
        """Fill derived counters and return a client-safe copy."""
        clean = PasteStore.clean_paste(paste)
        clean.views = self.logs.count_logs(log_type="view_paste", content=paste.custom_url)
        clean.comments = self.logs.count_logs(log_type="comment", content_prefix=f"{paste.custom_url};")
        return clean

    # ------------------------------------------------------------------
    # Create / edit / delete
    # ------------------------------------------------------------------

    def create_paste(
        self,
        sub: PasteSubmission,
        cookies: Mapping[str, str],
        source_ip: Optional[str] = None,
    ) -> Outcome:
        sub = dataclasses.replace(
            sub,
            custom_url=(sub.custom_url or str(uuid.uuid4())).strip().lower(),
            group_name=sub.group_name.strip().lower(),
            comment_on=sub.comment_on.strip().lower(),
            report_on=sub.report_on.strip().lower(),
        )
        error = _validate_submission(sub)
        if error:
            return Outcome(Result(False, error))

        if sub.is_editable:
            edit_code = sub.edit_password or secrets.token_hex(MIN_PASSWORD_LENGTH)
            edit_hash = create_hash(edit_code)
        else:
            edit_code = NOT_EDITABLE_HINT
            edit_hash = create_hash("")

        custom_url = sub.custom_url
        group_hash = ""
        if sub.group_name:
            group_hash = create_hash(sub.group_submit_password)
            existing = self.store.group_submit_password(sub.group_name)
            if existing is not None and existing != group_hash:
                return Outcome(Result(False, "Please use the correct paste group password!"))
            custom_url = f"{sub.group_name}/{custom_url}"

        existing = self.store.get_paste(custom_url)
        if not existing.ok:
            return Outcome(existing)
        if existing.record is not None:
            return Outcome(Result(False, ALREADY_EXISTS))

        metadata = PasteMetadata()
        thread_parent = sub.comment_on or sub.report_on
        if thread_parent:
            parent = self._load(thread_parent)
            if not parent.ok:
                return Outcome(Result(False, parent.message))
            parent_meta = parent.record.metadata
            if sub.comment_on:
                if parent_meta and not parent_meta.comments.enabled:
                    return Outcome(Result(False, "Comments are disabled on this paste!"))
                metadata.comments.is_comment_on = parent.record.custom_url
                if parent_meta:
                    metadata.comments.parent_comment_on = parent_meta.comments.is_comment_on

        # Association on create: comments and reports never tag the session.
        association = self.resolver.resolve(cookies, source_ip)
        set_cookie = association.set_cookie
        identity = association.identity
        tagged = False
        if (
            identity is None
            and not association.associated
            and not thread_parent
            and self.settings.auto_tag
        ):
            update = self.resolver.set_association(cookies, custom_url, source_ip)
            if update.associated:
                set_cookie = update.set_cookie
                tagged = True
        metadata.owner = identity or custom_url

        now = _now_ms()
        paste = Paste(
            custom_url=custom_url,
            content=sub.content,
            edit_password=edit_hash,
            view_password=create_hash(sub.view_password) if sub.view_password else "",
            pub_date=now,
            edit_date=now,
            group_name=sub.group_name,
            group_submit_password=group_hash,
            metadata=metadata,
            expire_on=sub.expire_on,
        )
        encryption = None
        if sub.view_password:
            payload = encrypt(sub.content)
            paste.content = payload.ciphertext
            encryption = EncryptionInfo(key=payload.key, iv=payload.iv, auth=payload.auth)

        created = Result(False, "Paste could not be created!")
        try:
            created = self.store.create_paste(paste, encryption)
        finally:
            if tagged and not created.ok:
                self.resolver.clear_association(cookies)
                logger.info("Rolled back association with %s after failed create", custom_url)
        if not created.ok:
            return Outcome(Result(False, created.message), association.set_cookie)

        self._log("create_paste", custom_url)
        if sub.comment_on:
            self.logs.create_log("comment", f"{metadata.comments.is_comment_on};{custom_url}")
        elif sub.report_on:
            self.logs.create_log("report", f"{sub.report_on};{custom_url}")

        return Outcome(Result(True, "Paste created!", self._decorate(paste)), set_cookie, edit_code)

    def edit_paste(
        self,
        edit: PasteEdit,
        cookies: Mapping[str, str],
        source_ip: Optional[str] = None,
    ) -> Outcome:
        old_url = edit.old_url.strip().lower()
        name, server = remote.split_remote(old_url)
        if server is not None:
            new_name, _ = remote.split_remote(edit.new_url.lower()) if edit.new_url else (name, None)
            return Outcome(
                remote.forward(
                    server,
                    "edit",
                    {
                        "OldURL": name,
                        "OldEditPassword": edit.old_edit_password,
                        "NewContent": edit.new_content,
                        "NewURL": new_name,
                        "NewEditPassword": edit.new_edit_password,
                    },
                    "Paste updated!",
                )
            )

        found = self._load(old_url)
        if not found.ok:
            return Outcome(found)
        paste: Paste = found.record

        association = self.resolver.resolve(cookies, source_ip)
        decision = authorize(
            Operation.EDIT_CONTENT,
            paste,
            edit.old_edit_password,
            association.identity,
            admin_hash(self.settings),
        )
        if not decision.allowed:
            return Outcome(Result(False, decision.reason), association.set_cookie)

        new_content = edit.new_content or None
        if new_content is not None:
            error = _check_length("Content", new_content, MIN_CONTENT_LENGTH, MAX_CONTENT_LENGTH)
            if error:
                return Outcome(Result(False, error), association.set_cookie)
        if edit.new_edit_password:
            error = _check_length(
                "Edit password", edit.new_edit_password, MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH
            )
            if error:
                return Outcome(Result(False, error), association.set_cookie)

        # Grouped pastes keep their group prefix; callers only submit the name part.
        current_name = paste.custom_url.split("/", 1)[-1]
        new_name = edit.new_url.strip().lower() or current_name
        new_url = paste.custom_url
        if new_name != current_name:
            error = _check_length("Custom URL", new_name, MIN_CUSTOM_URL_LENGTH, MAX_CUSTOM_URL_LENGTH)
            if error is None and not _URL_RE.match(new_name):
                error = f"Custom URL does not pass test: {CUSTOM_URL_PATTERN}"
            if error is None and new_name in ("group", VERSION_PASTE_URL):
                error = f'The custom URL "{new_name}" is reserved!'
            if error:
                return Outcome(Result(False, error), association.set_cookie)
            new_url = f"{paste.group_name}/{new_name}" if paste.group_name else new_name
            clash = self.store.get_paste(new_url)
            if clash.ok and clash.record is not None:
                return Outcome(Result(False, ALREADY_EXISTS), association.set_cookie)

        metadata = paste.metadata
        identity = association.identity
        if metadata is not None and identity and not paste.is_private:
            # The editor's association becomes the owner of a public paste.
            metadata = dataclasses.replace(metadata, owner=identity)
        if metadata is not None and new_url != paste.custom_url and metadata.owner == paste.custom_url:
            # A paste that owns itself keeps owning itself under its new name.
            metadata = dataclasses.replace(metadata, owner=new_url)

        updated = dataclasses.replace(
            paste,
            custom_url=new_url,
            edit_password=create_hash(edit.new_edit_password) if edit.new_edit_password else paste.edit_password,
            edit_date=_now_ms(),
            metadata=metadata,
        )
        encryption = None
        if new_content is not None:
            updated.content = new_content
            if paste.is_private:
                payload = encrypt(new_content)
                updated.content = payload.ciphertext
                encryption = EncryptionInfo(key=payload.key, iv=payload.iv, auth=payload.auth)

        saved = self.store.update_paste(paste.custom_url, updated, encryption)
        if not saved.ok:
            return Outcome(Result(False, saved.message), association.set_cookie)

        self._log("edit_paste", f"{paste.custom_url}->{new_url}")
        set_cookie = association.set_cookie
        if new_url != paste.custom_url and identity == paste.custom_url:
            moved = self.resolver.set_association(cookies, new_url, source_ip)
            if moved.associated:
                set_cookie = moved.set_cookie
        if new_url != paste.custom_url:
            self.resolver.move(paste.custom_url, new_url)
        return Outcome(Result(True, "Paste updated!", self._decorate(updated)), set_cookie)

    def delete_paste(self, custom_url: str, password: str) -> Outcome:
        custom_url = custom_url.strip().lower()
        name, server = remote.split_remote(custom_url)
        if server is not None:
            return Outcome(
                remote.forward(server, "delete", {"CustomURL": name, "EditPassword": password}, "Paste deleted!")
            )

        found = self._load(custom_url)
        if not found.ok:
            return Outcome(found)
        paste: Paste = found.record
        decision = authorize(Operation.DELETE, paste, password, None, admin_hash(self.settings))
        if not decision.allowed:
            return Outcome(Result(False, decision.reason, custom_url))

        deleted = self.store.delete_paste(paste.custom_url)
        if not deleted.ok:
            return Outcome(Result(False, deleted.message, custom_url))
        self._log("delete_paste", paste.custom_url)
        self.resolver.release(paste.custom_url)
        return Outcome(Result(True, "Paste deleted!", custom_url))

    # ------------------------------------------------------------------
    # Owner-scoped operations
    # ------------------------------------------------------------------

    def edit_metadata(
        self,
        custom_url: str,
        password: str,
        cookies: Mapping[str, str],
        changes: dict[str, Any],
    ) -> Outcome:
        """Merge changes (PascalCase metadata keys) into the paste's metadata."""
        found = self._load(custom_url)
        if not found.ok:
            return Outcome(found)
        paste: Paste = found.record

        association = self.resolver.resolve(cookies)
        decision = authorize(
            Operation.EDIT_METADATA,
            paste,
            password,
            association.identity,
            admin_hash(self.settings),
        )
        if not decision.allowed:
            return Outcome(Result(False, decision.reason), association.set_cookie)

        current = metadata_to_dict(paste.metadata or PasteMetadata(owner=paste.custom_url))
        merged = {**current, **changes}
        if decision.via != "admin":
            for key in _ADMIN_ONLY_KEYS:
                merged[key] = current.get(key)
        comment_changes = changes.get("Comments") or {}
        if not isinstance(comment_changes, dict):
            return Outcome(Result(False, "Invalid metadata"), association.set_cookie)
        comments = {**current.get("Comments", {}), **comment_changes}
        for key in _THREAD_KEYS:
            if key in current.get("Comments", {}):
                comments[key] = current["Comments"][key]
            else:
                comments.pop(key, None)
        merged["Comments"] = comments
        merged = {k: v for k, v in merged.items() if v is not None}

        metadata = metadata_from_dict(merged)

        saved = self.store.update_paste(paste.custom_url, dataclasses.replace(paste, metadata=metadata))
        if not saved.ok:
            return Outcome(Result(False, saved.message), association.set_cookie)
        return Outcome(Result(True, "Metadata updated!", metadata_to_dict(metadata)), association.set_cookie)

    def delete_comment(
        self,
        custom_url: str,
        comment_url: str,
        password: str,
        cookies: Mapping[str, str],
    ) -> Outcome:
        custom_url = custom_url.strip().lower()
        comment_url = comment_url.strip().lower()
        if remote.split_remote(custom_url)[1] is not None:
            return Outcome(Result(False, PASTE_MISSING))
        found = self._load(custom_url)
        if not found.ok:
            return Outcome(found)
        paste: Paste = found.record

        link_content = f"{paste.custom_url};{comment_url}"
        links = (
            self.logs.query_logs(log_type="comment", content=link_content).record
            + self.logs.query_logs(log_type="comment", content_prefix=f"{link_content};").record
        )
        if not links:
            return Outcome(Result(False, "Comment does not exist!"))
        comment = self.store.get_paste(comment_url).record

        association = self.resolver.resolve(cookies)
        decision = authorize(
            Operation.MODERATE_COMMENTS,
            paste,
            password,
            association.identity,
            admin_hash(self.settings),
            comment=comment,
        )
        if not decision.allowed:
            return Outcome(Result(False, decision.reason), association.set_cookie)

        for link in links:
            self.logs.delete_log(link.id)
        if comment is not None:
            deleted = self.store.delete_paste(comment.custom_url)
            if not deleted.ok:
                return Outcome(Result(False, deleted.message), association.set_cookie)
            self._log("delete_paste", comment.custom_url)
            self.resolver.release(comment.custom_url)
        return Outcome(Result(True, "Comment deleted!", comment_url), association.set_cookie)

    def associate(
        self,
        custom_url: str,
        password: str,
        cookies: Mapping[str, str],
        source_ip: Optional[str] = None,
    ) -> Outcome:
        """Paste login: act as custom_url for this browser session."""
        custom_url = custom_url.strip().lower()
        if remote.split_remote(custom_url)[1] is not None:
            return Outcome(Result(False, PASTE_MISSING))
        found = self._load(custom_url)
        if not found.ok:
            return Outcome(found)
        paste: Paste = found.record

        decision = authorize(Operation.ASSOCIATE, paste, password, None, admin_hash(self.settings))
        if not decision.allowed:
            return Outcome(Result(False, decision.reason))

        update = self.resolver.set_association(cookies, paste.custom_url, source_ip)
        if not update.associated:
            return Outcome(Result(False, update.value), update.set_cookie)
        return Outcome(Result(True, f"Associated as {paste.custom_url}", paste.custom_url), update.set_cookie)

    def disassociate(self, cookies: Mapping[str, str], password: str = "") -> Outcome:
        """Paste logout: drop the session's association."""
        association = self.resolver.resolve(cookies)
        identity = association.identity
        if identity is None:
            return Outcome(Result(False, "You must be associated with a paste to do this"), association.set_cookie)

        found = self.store.get_paste(identity)
        if found.ok and found.record is not None:
            decision = authorize(
                Operation.DISASSOCIATE,
                found.record,
                password,
                identity,
                admin_hash(self.settings),
            )
            if not decision.allowed:
                return Outcome(Result(False, decision.reason), association.set_cookie)

        cleared = self.resolver.clear_association(cookies)
        if not cleared.associated:
            return Outcome(Result(False, cleared.value), cleared.set_cookie)
        return Outcome(Result(True, f"Removed association with {identity}", identity), cleared.set_cookie)

    def link_domain(self, custom_url: str, password: str, domain: str) -> Outcome:
        found = self._load(custom_url)
        if not found.ok:
            return Outcome(found)
        paste: Paste = found.record

        decision = authorize(Operation.LINK_DOMAIN, paste, password, None, admin_hash(self.settings))
        if not decision.allowed:
            return Outcome(Result(False, decision.reason))

        domain = domain.strip().lower()
        if not _DOMAIN_RE.match(domain):
            return Outcome(Result(False, "Invalid domain"))
        if not self.settings.log_enabled("custom_domain"):
            return Outcome(Result(False, "Custom domains are disabled"))
        linked = self.logs.create_log("custom_domain", f"{paste.custom_url};{domain}")
        if not linked.ok:
            return Outcome(Result(False, linked.message))
        return Outcome(Result(True, f"Linked {domain}", domain))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def view_paste(
        self,
        custom_url: str,
        password: Optional[str] = None,
        identity: Optional[str] = None,
        count_view: bool = True,
    ) -> Result:
        """Return a client-safe paste with derived counters, gated by private source."""
        custom_url = custom_url.strip().lower()
        if remote.split_remote(custom_url)[1] is not None:
            fetched = remote.fetch_remote_paste(custom_url)
            if fetched is None:
                return Result(False, PASTE_MISSING)
            return Result(True, custom_url, fetched)

        found = self._load(custom_url)
        if not found.ok:
            return found
        paste: Paste = found.record

        decision = authorize(Operation.VIEW_SOURCE, paste, password, identity, admin_hash(self.settings))
        if not decision.allowed:
            return Result(False, decision.reason)
        if count_view:
            self._log("view_paste", paste.custom_url)
        return Result(True, paste.custom_url, self._decorate(paste))

    def paste_exists(self, custom_url: str) -> bool:
        found = self.store.get_paste(custom_url.strip().lower())
        return found.ok and found.record is not None

    def list_pastes(self) -> list[Paste]:
        found = self.store.list_pastes()
        return [PasteStore.clean_paste(p) for p in found.record]

    def list_group(self, group: str) -> list[Paste]:
        group = group.strip().lower()
        if remote.split_remote(group)[1] is not None:
            return remote.fetch_remote_group(group)
        found = self.store.list_group(group)
        return [PasteStore.clean_paste(p) for p in found.record]

    def list_comments(self, custom_url: str) -> Result:
        found = self._load(custom_url)
        if not found.ok:
            return found
        links = self.logs.query_logs(log_type="comment", content_prefix=f"{found.record.custom_url};")
        comments = []
        for link in links.record:
            child = link.content.split(";")[1]
            child_paste = self.store.get_paste(child).record
            if child_paste is not None:
                comments.append(self._decorate(child_paste))
        return Result(True, f"{len(comments)} comments", comments)

    def node_usage(self) -> tuple[int, int]:
        """(session count, local paste count) for nodeinfo."""
        return self.logs.count_logs(log_type="session"), self.store.count_pastes()

    # ------------------------------------------------------------------
    # Expiry and admin
    # ------------------------------------------------------------------

    def purge_expired(self, now_ms: Optional[int] = None) -> Result:
        """Delete every paste whose expiry has passed."""
        purged = []
        for custom_url in self.store.expired_urls(now_ms):
            if custom_url == VERSION_PASTE_URL:
                continue
            if self.store.delete_paste(custom_url).ok:
                self._log("delete_paste", custom_url)
                self.resolver.release(custom_url)
                purged.append(custom_url)
        if purged:
            logger.info("Purged %d expired pastes", len(purged))
        return Result(True, f"Purged {len(purged)} expired pastes", purged)

    def _admin_gate(self, password: str, action: str) -> Optional[Result]:
        if not is_admin(password, self.settings):
            return Result(False, "Invalid password")
        self._log("access_admin", action)
        return None

    def export_pastes(self, password: str) -> Result:
        """Full records including password hashes and key material. Admin only."""
        denied = self._admin_gate(password, "export_pastes")
        if denied:
            return denied
        found = self.store.list_pastes(include_private=True, limit=None)
        if not found.ok:
            return found
        exported = []
        for paste in found.record:
            record = _export_record(paste)
            if paste.view_password:
                info = self.store.get_encryption_info(paste.view_password, paste.custom_url).record
                if info is not None:
                    record["Encryption"] = dataclasses.asdict(info)
            expiry = self.store.get_paste(paste.custom_url).record
            if expiry is not None and expiry.expire_on is not None:
                record["ExpireOn"] = expiry.expire_on
            exported.append(record)
        return Result(True, f"Exported {len(exported)} pastes", exported)

    def import_pastes(self, password: str, records: list[dict[str, Any]]) -> Result:
        """Recreate exported pastes as-is. Hashes are stored without re-hashing."""
        denied = self._admin_gate(password, "import_pastes")
        if denied:
            return denied
        outputs = []
        for record in records:
            try:
                paste, encryption = _import_record(record)
            except (KeyError, TypeError, ValueError):
                outputs.append(Result(False, "Invalid paste record", record.get("CustomURL")))
                continue
            created = self.store.create_paste(paste, encryption)
            outputs.append(Result(created.ok, created.message, paste.custom_url))
        imported = sum(1 for r in outputs if r.ok)
        return Result(True, f"Imported {imported} of {len(outputs)} pastes", outputs)

    def mass_delete(self, password: str, custom_urls: list[str]) -> Result:
        denied = self._admin_gate(password, "mass_delete")
        if denied:
            return denied
        outputs = [self.delete_paste(url, password).result for url in custom_urls]
        deleted = sum(1 for r in outputs if r.ok)
        return Result(True, f"Deleted {deleted} of {len(outputs)} pastes", outputs)

    def export_logs(self, password: str, log_type: Optional[str] = None) -> Result:
        denied = self._admin_gate(password, "export_logs")
        if denied:
            return denied
        found = self.logs.query_logs(log_type=log_type)
        if not found.ok:
            return found
        return Result(True, f"Exported {len(found.record)} logs", [dataclasses.asdict(log) for log in found.record])

    def mass_delete_logs(self, password: str, log_ids: list[str]) -> Result:
        denied = self._admin_gate(password, "mass_delete_logs")
        if denied:
            return denied
        outputs = []
        for log_id in log_ids:
            deleted = self.logs.delete_log(log_id)
            outputs.append(Result(deleted.ok, deleted.message, log_id))
        removed = sum(1 for r in outputs if r.ok)
        return Result(True, f"Deleted {removed} of {len(outputs)} logs", outputs)


# ---------------------------------------------------------------------------
# Export format
# ---------------------------------------------------------------------------


def _export_record(paste: Paste) -> dict[str, Any]:
    return {
        "CustomURL": paste.custom_url,
        "Content": paste.content,
        "EditPassword": paste.edit_password,
        "ViewPassword": paste.view_password,
        "PubDate": paste.pub_date,
        "EditDate": paste.edit_date,
        "GroupName": paste.group_name,
        "GroupSubmitPassword": paste.group_submit_password,
        "Metadata": metadata_to_dict(paste.metadata) if paste.metadata else None,
    }


def _import_record(record: dict[str, Any]) -> tuple[Paste, Optional[EncryptionInfo]]:
    metadata = record.get("Metadata")
    encryption = record.get("Encryption")
    paste = Paste(
        custom_url=str(record["CustomURL"]).lower(),
        content=str(record["Content"]),
        edit_password=str(record.get("EditPassword") or ""),
        view_password=str(record.get("ViewPassword") or ""),
        pub_date=int(record.get("PubDate") or _now_ms()),
        edit_date=int(record.get("EditDate") or _now_ms()),
        group_name=str(record.get("GroupName") or ""),
        group_submit_password=str(record.get("GroupSubmitPassword") or ""),
        metadata=metadata_from_dict(metadata) if isinstance(metadata, dict) else None,
        expire_on=int(record["ExpireOn"]) if record.get("ExpireOn") else None,
    )
    info = EncryptionInfo(**encryption) if isinstance(encryption, dict) else None
    return paste, info
