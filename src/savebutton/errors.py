"""
Error taxonomy shared by the vault, config store, sync engine and
front-ends.

Library code raises these; the daemon and native host turn them into
HTTP status codes or an ``error`` field instead of terminating.
"""

from __future__ import annotations

from typing import Optional


class SaveButtonError(Exception):
    """Base class for every error the sync agent raises on purpose."""


class IoFailure(SaveButtonError):
    """Reading or writing local state failed."""


class DecodeFailure(SaveButtonError):
    """Malformed JSON, base64 or config content."""


class TransportFailure(SaveButtonError):
    """Network error or an unexpected HTTP status from the server.

    Attributes:
        status_code: HTTP status when the server answered, else None.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationFailure(TransportFailure):
    """The server rejected the stored email/password (HTTP 401)."""


class CryptoFailure(SaveButtonError):
    """Bad key length, authentication-tag mismatch or invalid nonce."""


class InvalidCiphertext(CryptoFailure):
    """Encrypted blob is too short to hold a nonce and a tag."""


class InvalidEncoding(CryptoFailure):
    """Decrypted bytes are not valid UTF-8."""


class ConfigIncomplete(SaveButtonError):
    """Server, email or password is missing from the config."""
