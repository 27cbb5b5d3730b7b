"""
pastes/metadata.py -- Storage encoding for paste metadata.

Stored paste content is "<content>_metadata:<encoded>" where <encoded> is
base64 of the percent-encoded JSON of the metadata record with PascalCase keys
(Owner, Locked, Comments.IsCommentOn, ...). Records written by older releases
of the service decode unchanged.

Only pastes/store.py and the encryption gate call pack/unpack. Everything
else works with Paste.content and Paste.metadata separately.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional
from urllib.parse import quote, unquote

from pastes.models import CommentSettings, PasteMetadata

logger = logging.getLogger("entry.pastes")

METADATA_DELIMITER = "_metadata:"

# encodeURIComponent leaves these unescaped.
_URI_SAFE = "-_.!~*'()"

_METADATA_KEYS = {
    "owner": "Owner",
    "version": "Version",
    "paste_type": "PasteType",
    "locked": "Locked",
    "show_owner_enabled": "ShowOwnerEnabled",
    "show_view_count": "ShowViewCount",
    "private_source": "PrivateSource",
    "enable_paste_list": "EnablePasteList",
    "include_in_search": "IncludeInSearch",
    "claim_allowed": "ClaimAllowed",
    "title": "Title",
    "description": "Description",
    "favicon": "Favicon",
    "embed_color": "EmbedColor",
    "embed_image": "EmbedImage",
    "social_icon": "SocialIcon",
    "badges": "Badges",
}

_COMMENT_KEYS = {
    "enabled": "Enabled",
    "is_comment_on": "IsCommentOn",
    "parent_comment_on": "ParentCommentOn",
    "is_private_message": "IsPrivateMessage",
    "allow_anonymous": "AllowAnonymous",
    "reports_enabled": "ReportsEnabled",
    "filter": "Filter",
}


def metadata_to_dict(metadata: PasteMetadata) -> dict[str, Any]:
    """PascalCase dict form, omitting unset optional fields."""
    out = {key: getattr(metadata, attr) for attr, key in _METADATA_KEYS.items()}
    out["Comments"] = {key: getattr(metadata.comments, attr) for attr, key in _COMMENT_KEYS.items()}
    out["Comments"] = {k: v for k, v in out["Comments"].items() if v is not None}
    return {k: v for k, v in out.items() if v is not None}


def metadata_from_dict(data: dict[str, Any]) -> PasteMetadata:
    """Build a PasteMetadata from its PascalCase dict form. Unknown keys are ignored."""
    metadata = PasteMetadata(**{attr: data[key] for attr, key in _METADATA_KEYS.items() if key in data})
    comments = data.get("Comments") or {}
    if isinstance(comments, dict):
        metadata.comments = CommentSettings(
            **{attr: comments[key] for attr, key in _COMMENT_KEYS.items() if key in comments}
        )
    return metadata


def encode_metadata(metadata: PasteMetadata) -> str:
    serialized = json.dumps(metadata_to_dict(metadata), separators=(",", ":"))
    return base64.b64encode(quote(serialized, safe=_URI_SAFE).encode("ascii")).decode("ascii")


def decode_metadata(encoded: str) -> Optional[PasteMetadata]:
    """Return the decoded metadata, or None if encoded is not a metadata blob."""
    try:
        data = json.loads(unquote(base64.b64decode(encoded, validate=True).decode("ascii")))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    return metadata_from_dict(data)


def pack_content(content: str, metadata: Optional[PasteMetadata]) -> str:
    if metadata is None:
        return content
    return f"{content}{METADATA_DELIMITER}{encode_metadata(metadata)}"


def unpack_content(stored: str) -> tuple[str, Optional[PasteMetadata]]:
    """Split stored content into (content, metadata).

    Content that merely contains the delimiter text is returned whole.
    """
    head, delimiter, tail = stored.rpartition(METADATA_DELIMITER)
    if not delimiter:
        return stored, None
    metadata = decode_metadata(tail)
    if metadata is None:
        logger.debug("Ignoring undecodable metadata suffix")
        return stored, None
    return head, metadata
