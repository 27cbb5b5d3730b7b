"""
auth/crypto.py -- Deterministic hashing and symmetric encryption helpers.

Security design decisions:
  Hashing: SHA-256 hex digest, unsalted. Edit passwords, view passwords and
       the admin password are compared digest-to-digest, so equal inputs must
       always hash identically. This is an accepted trade-off for paste edit
       codes, not a password-storage scheme for user accounts.

  Encryption: AES-256-GCM via cryptography's AESGCM. A fresh 32-byte key and
       12-byte IV are generated per paste revision. AESGCM appends the 16-byte
       tag to the ciphertext; we split it off so the three parts (ciphertext,
       key, iv, auth tag) are stored as separate hex strings.

Pure functions, no state. Layer rule: no imports from api/, logs/ or pastes/.
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

_KEY_BYTES = 32
_IV_BYTES = 12
_TAG_BYTES = 16


class DecryptionError(ValueError):
    """Ciphertext could not be decrypted: bad tag, wrong key or malformed input."""


@dataclass(frozen=True)
class EncryptedPayload:
    ciphertext: str
    key: str
    iv: str
    auth: str


def create_hash(secret: str) -> str:
    """Return the SHA-256 hex digest of ``secret``."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def random_object_hash() -> str:
    """Return the hash of a random UUID. Used for log and session ids."""
    return create_hash(str(uuid.uuid4()))


def encrypt(plaintext: str, key: Optional[str] = None) -> EncryptedPayload:
    """Encrypt ``plaintext`` with AES-256-GCM.

    Args:
        plaintext: Text to encrypt. The empty string is valid.
        key:       Optional hex key to reuse. A random key is generated otherwise.
    """
    raw_key = bytes.fromhex(key) if key else secrets.token_bytes(_KEY_BYTES)
    iv = secrets.token_bytes(_IV_BYTES)
    sealed = AESGCM(raw_key).encrypt(iv, plaintext.encode("utf-8"), None)
    return EncryptedPayload(
        ciphertext=sealed[:-_TAG_BYTES].hex(),
        key=raw_key.hex(),
        iv=iv.hex(),
        auth=sealed[-_TAG_BYTES:].hex(),
    )


def decrypt(ciphertext: str, key: str, iv: str, auth: str) -> str:
    """Decrypt a payload produced by encrypt().

    Raises DecryptionError when the auth tag does not validate or any part is
    malformed (bad hex, wrong key length, wrong tag length).
    """
    try:
        tag = bytes.fromhex(auth)
        if len(tag) != _TAG_BYTES:
            raise DecryptionError("Invalid auth tag length")
        aesgcm = AESGCM(bytes.fromhex(key))
        plaintext = aesgcm.decrypt(bytes.fromhex(iv), bytes.fromhex(ciphertext) + tag, None)
    except InvalidTag as e:
        raise DecryptionError("Authentication tag mismatch") from e
    except DecryptionError:
        raise
    except ValueError as e:
        # bytes.fromhex and AESGCM both raise ValueError on malformed input.
        raise DecryptionError(str(e)) from e
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Plaintext is not valid UTF-8") from e
