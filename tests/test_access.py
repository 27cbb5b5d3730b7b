"""Unit tests for auth/access.py -- the ownership and access evaluator.

Covers:
- password-only operations ignore the lock; lock-gated ones honor it
- owner (association) credentials for metadata edits and comment moderation
- the instance admin override and the reserved version paste
- private source gating for VIEW_SOURCE
"""

import pytest

from auth.access import (
    INVALID_PASSWORD,
    NOT_ASSOCIATED,
    NOT_COMMENT_OWNER,
    NOT_EDITABLE,
    SOURCE_PRIVATE,
    Operation,
    admin_hash,
    authorize,
    is_editable,
)
from auth.crypto import create_hash
from conftest import ADMIN_PASSWORD, make_settings
from pastes.models import CommentSettings, Paste, PasteMetadata

ADMIN_HASH = admin_hash(make_settings())


def _paste(url="notes", password="secret1", locked=False, owner=None, **meta) -> Paste:
    return Paste(
        custom_url=url,
        content="hello",
        edit_password=create_hash(password) if password is not None else create_hash(""),
        metadata=PasteMetadata(owner=owner or url, locked=locked, **meta),
    )


def _allowed(operation, paste, password=None, identity=None, comment=None) -> bool:
    return authorize(operation, paste, password, identity, ADMIN_HASH, comment=comment).allowed


class TestPasswordOperations:
    def test_delete_with_password(self):
        """EditPassword = Hash("secret1"), caller supplies "secret1", not locked -> allowed."""
        decision = authorize(Operation.DELETE, _paste(), "secret1", None, ADMIN_HASH)
        assert decision.allowed
        assert decision.via == "password"

    @pytest.mark.parametrize("operation", [Operation.EDIT_CONTENT, Operation.DELETE])
    def test_lock_does_not_block_password_operations(self, operation):
        assert _allowed(operation, _paste(locked=True), "secret1")

    def test_wrong_password(self):
        decision = authorize(Operation.DELETE, _paste(), "secret2", None, ADMIN_HASH)
        assert not decision.allowed
        assert decision.reason == INVALID_PASSWORD

    def test_owner_cannot_edit_content_without_password(self):
        assert not _allowed(Operation.EDIT_CONTENT, _paste(), None, identity="notes")

    def test_non_editable_paste(self):
        decision = authorize(Operation.EDIT_CONTENT, _paste(password=None), "", None, ADMIN_HASH)
        assert decision.reason == NOT_EDITABLE

    def test_empty_password_never_matches_non_editable(self):
        assert not _allowed(Operation.DELETE, _paste(password=None), "")

    def test_associate_ignores_lock(self):
        assert _allowed(Operation.ASSOCIATE, _paste(locked=True), "secret1")

    def test_is_editable(self):
        assert not is_editable("")
        assert not is_editable(create_hash(""))
        assert is_editable(create_hash("x"))


class TestLockGatedOperations:
    def test_locked_metadata_edit(self):
        """Correct password on a locked paste -> "Cannot edit metadata: Paste is locked"."""
        decision = authorize(Operation.EDIT_METADATA, _paste(locked=True), "secret1", None, ADMIN_HASH)
        assert not decision.allowed
        assert decision.reason == "Cannot edit metadata: Paste is locked"

    def test_locked_comment_moderation(self):
        decision = authorize(Operation.MODERATE_COMMENTS, _paste(locked=True), "secret1", None, ADMIN_HASH)
        assert decision.reason == "Cannot delete comments while your paste is locked."

    def test_locked_disassociate(self):
        decision = authorize(Operation.DISASSOCIATE, _paste(locked=True), None, "notes", ADMIN_HASH)
        assert decision.reason == "Cannot remove association with this paste while it is locked."

    def test_locked_link_domain(self):
        decision = authorize(Operation.LINK_DOMAIN, _paste(locked=True), "secret1", None, ADMIN_HASH)
        assert decision.reason == "Cannot link domain: Paste is locked"

    def test_lock_checked_after_credentials(self):
        """A caller without credentials learns nothing about the lock."""
        decision = authorize(Operation.EDIT_METADATA, _paste(locked=True), "nope", None, ADMIN_HASH)
        assert decision.reason == INVALID_PASSWORD

    def test_owner_edits_metadata(self):
        decision = authorize(Operation.EDIT_METADATA, _paste(owner="alice"), None, "alice", ADMIN_HASH)
        assert decision.allowed
        assert decision.via == "owner"

    def test_stranger_cannot_edit_metadata(self):
        assert not _allowed(Operation.EDIT_METADATA, _paste(owner="alice"), None, "mallory")


class TestCommentModeration:
    def _comment(self, parent_comment_on=None) -> Paste:
        return Paste(
            custom_url="reply-1",
            content="hi",
            metadata=PasteMetadata(
                owner="reply-1",
                comments=CommentSettings(is_comment_on="thread", parent_comment_on=parent_comment_on),
            ),
        )

    def test_requires_association(self):
        decision = authorize(Operation.MODERATE_COMMENTS, _paste(url="thread"), None, None, ADMIN_HASH)
        assert decision.reason == NOT_ASSOCIATED

    def test_thread_owner(self):
        assert _allowed(Operation.MODERATE_COMMENTS, _paste(url="thread"), identity="thread", comment=self._comment())

    def test_paste_one_level_up(self):
        comment = self._comment(parent_comment_on="grandparent")
        assert _allowed(Operation.MODERATE_COMMENTS, _paste(url="thread"), identity="grandparent", comment=comment)

    def test_unrelated_paste(self):
        decision = authorize(
            Operation.MODERATE_COMMENTS, _paste(url="thread"), None, "mallory", ADMIN_HASH, comment=self._comment()
        )
        assert decision.reason == NOT_COMMENT_OWNER


class TestDisassociate:
    def test_own_association(self):
        assert _allowed(Operation.DISASSOCIATE, _paste(), identity="notes")

    def test_other_association(self):
        decision = authorize(Operation.DISASSOCIATE, _paste(), None, "other", ADMIN_HASH)
        assert decision.reason == NOT_ASSOCIATED


class TestAdminAndReserved:
    @pytest.mark.parametrize(
        "operation",
        [Operation.EDIT_CONTENT, Operation.DELETE, Operation.EDIT_METADATA, Operation.LINK_DOMAIN],
    )
    def test_admin_overrides_lock(self, operation):
        decision = authorize(operation, _paste(locked=True), ADMIN_PASSWORD, None, ADMIN_HASH)
        assert decision.allowed
        assert decision.via == "admin"

    def test_admin_disabled(self):
        assert not authorize(Operation.DELETE, _paste(), "", None, admin_hash(make_settings(debug=False, admin_password=""))).allowed

    def test_version_paste_cannot_be_deleted_by_admin(self):
        version = Paste(custom_url="v", content="1.0", group_name="server")
        decision = authorize(Operation.DELETE, version, ADMIN_PASSWORD, None, ADMIN_HASH)
        assert not decision.allowed
        assert decision.reason == "Cannot delete version paste!"

    def test_version_paste_cannot_be_edited_by_admin(self):
        version = Paste(custom_url="v", content="1.0", group_name="server")
        assert authorize(Operation.EDIT_CONTENT, version, ADMIN_PASSWORD, None, ADMIN_HASH).reason == NOT_EDITABLE


class TestViewSource:
    def test_public_source(self):
        assert authorize(Operation.VIEW_SOURCE, _paste(), None, None, ADMIN_HASH).via == "public"

    def test_private_source_denied(self):
        decision = authorize(Operation.VIEW_SOURCE, _paste(private_source=True), None, "other", ADMIN_HASH)
        assert decision.reason == SOURCE_PRIVATE

    @pytest.mark.parametrize(
        "password,identity",
        [("secret1", None), (None, "notes"), (ADMIN_PASSWORD, None)],
    )
    def test_private_source_allowed(self, password, identity):
        assert _allowed(Operation.VIEW_SOURCE, _paste(private_source=True), password, identity)

    def test_lock_does_not_hide_source(self):
        assert _allowed(Operation.VIEW_SOURCE, _paste(locked=True, private_source=True), None, "notes")
