"""Unit tests for pastes/metadata.py -- the stored "_metadata:" suffix.

Covers:
- PascalCase dict form, omitting unset optional fields
- pack/unpack of stored content
- content that merely contains the delimiter stays whole
"""

import base64
import json
from urllib.parse import quote

from pastes.metadata import (
    METADATA_DELIMITER,
    decode_metadata,
    encode_metadata,
    metadata_from_dict,
    metadata_to_dict,
    pack_content,
    unpack_content,
)
from pastes.models import CommentSettings, PasteMetadata


class TestDictForm:
    def test_pascal_case_keys(self):
        data = metadata_to_dict(PasteMetadata(owner="alice", locked=True))
        assert data["Owner"] == "alice"
        assert data["Locked"] is True
        assert data["Comments"]["Enabled"] is True
        assert "Title" not in data
        assert "IsCommentOn" not in data["Comments"]

    def test_unknown_keys_ignored(self):
        metadata = metadata_from_dict({"Owner": "bob", "Shiny": 1, "Comments": {"IsCommentOn": "p"}})
        assert metadata.owner == "bob"
        assert metadata.comments.is_comment_on == "p"

    def test_dict_round_trip(self):
        metadata = PasteMetadata(
            owner="alice",
            title="Notes",
            comments=CommentSettings(is_comment_on="parent", parent_comment_on="grandparent"),
        )
        assert metadata_from_dict(metadata_to_dict(metadata)) == metadata


class TestStoredContent:
    def test_pack_and_unpack(self):
        metadata = PasteMetadata(owner="alice")
        stored = pack_content("# hello", metadata)
        assert stored.startswith("# hello" + METADATA_DELIMITER)
        content, decoded = unpack_content(stored)
        assert content == "# hello"
        assert decoded == metadata

    def test_no_metadata(self):
        assert pack_content("plain", None) == "plain"
        assert unpack_content("plain") == ("plain", None)

    def test_delimiter_in_content_is_kept(self):
        stored = "see _metadata: for details"
        assert unpack_content(stored) == (stored, None)

    def test_last_delimiter_wins(self):
        metadata = PasteMetadata(owner="alice")
        stored = pack_content("a _metadata: b", metadata)
        assert unpack_content(stored) == ("a _metadata: b", metadata)

    def test_reads_legacy_encoding(self):
        """Records written as base64(encodeURIComponent(JSON)) decode unchanged."""
        legacy = base64.b64encode(
            quote(json.dumps({"Owner": "old paste", "Version": 1}), safe="-_.!~*'()").encode()
        ).decode()
        metadata = decode_metadata(legacy)
        assert metadata.owner == "old paste"

    def test_encoding_is_ascii(self):
        encoded = encode_metadata(PasteMetadata(owner="café"))
        assert encoded.isascii()
        assert decode_metadata(encoded).owner == "café"

    def test_non_object_json_rejected(self):
        assert decode_metadata(base64.b64encode(b"%5B1%5D").decode()) is None
