"""
Credential Vault -- the account password at rest.

AES-256-GCM with a fresh 12-byte nonce per encryption. The stored blob
is ``base64(nonce || ciphertext || tag)`` and the 32-byte key is kept,
base64-encoded, next to it in the config record.

Storing the key beside the ciphertext only keeps the password away from
casual inspection; anyone who can read ~/.kaya/.config can decrypt it.
The format is kept byte-compatible with existing configs.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CryptoFailure, DecodeFailure, InvalidCiphertext, InvalidEncoding

NONCE_LEN = 12
TAG_LEN = 16
KEY_LEN = 32


def generate_key() -> bytes:
    """Draw a new 32-byte key from the OS CSPRNG."""
    return os.urandom(KEY_LEN)


def _cipher(key: bytes) -> AESGCM:
    if len(key) != KEY_LEN:
        raise CryptoFailure("Invalid key length")
    return AESGCM(key)


def encrypt_password(password: str, key: bytes) -> str:
    """Encrypt a password for storage.

    Args:
        password: Plaintext password.
        key: 32-byte AES key.

    Returns:
        Base64 text of nonce + ciphertext + tag.

    Raises:
        CryptoFailure: If the key is not 32 bytes.
    """
    aesgcm = _cipher(key)
    nonce = os.urandom(NONCE_LEN)
    sealed = aesgcm.encrypt(nonce, password.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_password(encrypted: str, key: bytes) -> str:
    """Recover a password produced by :func:`encrypt_password`.

    Args:
        encrypted: Base64 blob from the config record.
        key: The 32-byte key stored alongside it.

    Returns:
        The original password.

    Raises:
        DecodeFailure: If the blob is not valid base64.
        InvalidCiphertext: If the blob is shorter than nonce + tag.
        CryptoFailure: If authentication fails (wrong key or tampering).
        InvalidEncoding: If the plaintext is not UTF-8.
    """
    try:
        data = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeFailure(f"Base64 decode error: {exc}") from exc

    if len(data) < NONCE_LEN + TAG_LEN:
        raise InvalidCiphertext("Invalid encrypted data")

    aesgcm = _cipher(key)
    nonce, ciphertext = data[:NONCE_LEN], data[NONCE_LEN:]
    try:
        plaintext = aesgcm.decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise CryptoFailure("Failed to decrypt: authentication failed") from exc

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncoding(f"Invalid UTF-8: {exc}") from exc


def encode_key(key: bytes) -> str:
    """Base64-encode a key for the config record."""
    return base64.b64encode(key).decode("ascii")


def decode_key(encoded: str) -> bytes:
    """Decode a stored key and check its length.

    Raises:
        DecodeFailure: If the text is not valid base64.
        CryptoFailure: If the decoded key is not 32 bytes.
    """
    try:
        key = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeFailure(f"Base64 decode error: {exc}") from exc
    if len(key) != KEY_LEN:
        raise CryptoFailure("Invalid key length")
    return key
