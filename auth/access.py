"""
auth/access.py -- Decides whether a caller may perform an operation on a paste.

Credentials, in precedence order:

  1. admin     -- the supplied password hashes to the instance admin password.
                  Allowed for everything except DELETE / DISASSOCIATE / EDIT_CONTENT
                  on the reserved version paste.
  2. password  -- the supplied password hashes to the paste's EditPassword.
                  Never matches a non-editable paste.
  3. owner     -- the resolved association equals Metadata.Owner. Only counts
                  for EDIT_METADATA, MODERATE_COMMENTS and VIEW_SOURCE.

Lock gating: Metadata.Locked blocks EDIT_METADATA, MODERATE_COMMENTS,
DISASSOCIATE and LINK_DOMAIN for every credential except admin. It does not
block EDIT_CONTENT or DELETE, which are gated by the edit password alone.

A caller with no valid credential gets the credential failure reason; a caller
with a valid credential on a locked paste gets the lock reason. Every reason
string is user-visible and echoed into ?err= redirects.

Pastes are passed in as values (anything with custom_url, edit_password,
group_name and metadata attributes). Layer rule: no imports from pastes/.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, NamedTuple, Optional

from auth.crypto import create_hash
from core.config import Settings
from core.models import VERSION_PASTE_GROUP, VERSION_PASTE_URL

logger = logging.getLogger("entry.access")

INVALID_PASSWORD = "Invalid password"
NOT_ASSOCIATED = "You must be associated with a paste to do this"
NOT_COMMENT_OWNER = (
    "Cannot delete comments on a paste you're not associated with! Please change your paste association."
)
VERSION_PASTE_DELETE = "Cannot delete version paste!"
NOT_EDITABLE = "This paste is not editable"
SOURCE_PRIVATE = "Source is private"


class Operation(str, Enum):
    EDIT_CONTENT = "edit_content"
    DELETE = "delete"
    EDIT_METADATA = "edit_metadata"
    MODERATE_COMMENTS = "moderate_comments"
    DISASSOCIATE = "disassociate"
    LINK_DOMAIN = "link_domain"
    VIEW_SOURCE = "view_source"
    ASSOCIATE = "associate"


_LOCK_REASONS = {
    Operation.EDIT_METADATA: "Cannot edit metadata: Paste is locked",
    Operation.MODERATE_COMMENTS: "Cannot delete comments while your paste is locked.",
    Operation.DISASSOCIATE: "Cannot remove association with this paste while it is locked.",
    Operation.LINK_DOMAIN: "Cannot link domain: Paste is locked",
}

# Operations the reserved version paste refuses, even to the admin.
_RESERVED_BLOCKED = {
    Operation.EDIT_CONTENT: NOT_EDITABLE,
    Operation.DELETE: VERSION_PASTE_DELETE,
    Operation.DISASSOCIATE: NOT_EDITABLE,
}


class Decision(NamedTuple):
    allowed: bool
    reason: str
    via: Optional[str] = None  # "admin" | "password" | "owner" | "association" | "public"


def admin_hash(settings: Settings) -> str:
    """Hash of the configured admin password, or "" when the override is disabled."""
    return create_hash(settings.admin_password) if settings.admin_password else ""


def is_admin(password: Optional[str], settings: Settings) -> bool:
    """True when password is the instance admin password."""
    return _matches(password, admin_hash(settings))


def is_editable(edit_password_hash: str) -> bool:
    """Non-editable pastes store an empty EditPassword or the hash of ""."""
    return edit_password_hash not in ("", create_hash(""))


def is_reserved(paste: Any) -> bool:
    return paste.custom_url == VERSION_PASTE_URL or paste.group_name == VERSION_PASTE_GROUP


def _matches(password: Optional[str], digest: str) -> bool:
    if not password or not digest:
        return False
    return create_hash(password) == digest


def _deny(operation: Operation, paste: Any, reason: str) -> Decision:
    logger.debug("Denied %s on %s: %s", operation.value, paste.custom_url, reason)
    return Decision(False, reason)


def authorize(
    operation: Operation,
    paste: Any,
    password: Optional[str],
    identity: Optional[str],
    admin_password_hash: str,
    comment: Any = None,
) -> Decision:
    """Authorize operation on paste.

    Args:
        operation:           What the caller wants to do.
        paste:               Target paste (for MODERATE_COMMENTS, the paste hosting the thread).
        password:            Plaintext password supplied with the request, or None.
        identity:            Resolved association (Association.identity), or None.
        admin_password_hash: admin_hash(settings).
        comment:             For MODERATE_COMMENTS, the comment paste being removed.
    """
    metadata = paste.metadata
    locked = bool(metadata and metadata.locked)

    if is_reserved(paste) and operation in _RESERVED_BLOCKED:
        return _deny(operation, paste, _RESERVED_BLOCKED[operation])

    admin = _matches(password, admin_password_hash)
    password_ok = is_editable(paste.edit_password) and _matches(password, paste.edit_password)

    if operation is Operation.VIEW_SOURCE:
        if not (metadata and metadata.private_source):
            return Decision(True, "", "public")
        if admin:
            return Decision(True, "", "admin")
        if password_ok:
            return Decision(True, "", "password")
        if identity and identity == metadata.owner:
            return Decision(True, "", "owner")
        return _deny(operation, paste, SOURCE_PRIVATE)

    if admin:
        return Decision(True, "", "admin")

    if operation in (Operation.EDIT_CONTENT, Operation.DELETE, Operation.ASSOCIATE):
        if password_ok:
            return Decision(True, "", "password")
        if operation is Operation.EDIT_CONTENT and not is_editable(paste.edit_password):
            return _deny(operation, paste, NOT_EDITABLE)
        return _deny(operation, paste, INVALID_PASSWORD)

    # Lock-gated operations from here on.
    via = None
    if password_ok:
        via = "password"
    elif operation is Operation.EDIT_METADATA:
        if identity and metadata and identity == metadata.owner:
            via = "owner"
    elif operation is Operation.MODERATE_COMMENTS:
        if identity is None:
            return _deny(operation, paste, NOT_ASSOCIATED)
        if _may_moderate(identity, paste, comment):
            via = "owner"
        else:
            return _deny(operation, paste, NOT_COMMENT_OWNER)
    elif operation is Operation.DISASSOCIATE:
        if identity is None or identity != paste.custom_url:
            return _deny(operation, paste, NOT_ASSOCIATED)
        via = "association"

    if via is None:
        return _deny(operation, paste, INVALID_PASSWORD)
    if locked:
        return _deny(operation, paste, _LOCK_REASONS[operation])
    return Decision(True, "", via)


def _may_moderate(identity: str, paste: Any, comment: Any) -> bool:
    """The thread owner, or the paste one level up the comment's reply chain."""
    if paste.metadata and identity == paste.metadata.owner:
        return True
    if comment is not None and comment.metadata is not None:
        return identity == comment.metadata.comments.parent_comment_on
    return False
