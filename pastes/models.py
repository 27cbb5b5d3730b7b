"""
pastes/models.py -- Domain dataclasses for pastes, their metadata and encryption rows.

Pattern: Data class. Content and metadata are separate fields everywhere in the
application; pastes/store.py is the only place they are packed into one stored
column (see pastes/metadata.py).

A comment is itself a Paste whose metadata.comments.is_comment_on names the
parent paste; a reply also carries parent_comment_on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from auth.access import is_editable


@dataclass
class CommentSettings:
    enabled: bool = True
    is_comment_on: Optional[str] = None
    # For replies: the is_comment_on of the comment being replied to.
    parent_comment_on: Optional[str] = None
    is_private_message: bool = False
    allow_anonymous: bool = True
    reports_enabled: bool = True
    filter: Optional[str] = None


@dataclass
class PasteMetadata:
    owner: str = ""
    version: int = 1
    paste_type: str = "normal"
    locked: bool = False
    show_owner_enabled: bool = True
    show_view_count: bool = True
    private_source: bool = False
    enable_paste_list: bool = True
    include_in_search: bool = True
    claim_allowed: bool = True
    title: Optional[str] = None
    description: Optional[str] = None
    favicon: Optional[str] = None
    embed_color: Optional[str] = None
    embed_image: Optional[str] = None
    social_icon: Optional[str] = None
    badges: Optional[str] = None
    comments: CommentSettings = field(default_factory=CommentSettings)


@dataclass
class EncryptionInfo:
    """Key material for one private paste revision, keyed by (view password hash, URL)."""

    key: str
    iv: str
    auth: str


@dataclass
class Paste:
    custom_url: str
    content: str
    edit_password: str = ""  # sha256 hex, never serialized to clients
    view_password: str = ""  # sha256 hex; non-empty marks the paste private
    pub_date: int = 0  # unix ms
    edit_date: int = 0  # unix ms, doubles as the revision id
    group_name: str = ""
    group_submit_password: str = ""
    metadata: Optional[PasteMetadata] = None
    expire_on: Optional[int] = None  # unix ms

    # Derived on read, never stored.
    views: int = 0
    comments: int = 0
    host_server: Optional[str] = None

    @property
    def is_editable(self) -> bool:
        return is_editable(self.edit_password)

    @property
    def is_private(self) -> bool:
        return bool(self.view_password)
