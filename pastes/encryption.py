"""
pastes/encryption.py -- The only path from a private paste's ciphertext to plaintext.

get_decrypted() collapses every failure (unknown paste, public paste, wrong
view password, missing key row, corrupted ciphertext, store error) into None so
a caller cannot tell "not private" from "wrong password". Plaintext is returned
to the caller and never written back.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.crypto import DecryptionError, create_hash, decrypt
from pastes.metadata import unpack_content
from pastes.store import PasteStore

logger = logging.getLogger("entry.pastes")


def get_decrypted(store: PasteStore, custom_url: str, view_password: Optional[str]) -> Optional[str]:
    """Return the decrypted content of a private paste, or None."""
    found = store.get_paste(custom_url)
    if not found.ok or found.record is None:
        return None
    paste = found.record
    if not paste.view_password:
        return None

    info = store.get_encryption_info(create_hash(view_password or ""), paste.custom_url)
    if not info.ok or info.record is None:
        return None

    try:
        plaintext = decrypt(paste.content, info.record.key, info.record.iv, info.record.auth)
    except DecryptionError:
        logger.warning("Stored ciphertext for %s failed to decrypt", paste.custom_url)
        return None

    # Metadata is never encrypted; older records may still carry it inside.
    content, _ = unpack_content(plaintext)
    return content
