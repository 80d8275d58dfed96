"""
Config Store -- the account record under ~/.kaya/.config.

One flat TOML table with four optional strings::

    server = "https://savebutton.com"
    email = "me@example.com"
    encrypted_password = "<base64 nonce+ciphertext+tag>"
    encryption_key = "<base64 32-byte key>"

The file is always rewritten in full through a temporary file and
``os.replace`` so a concurrent reader sees either the old record or the
new one, never half of each.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Optional

import tomli_w
from pydantic import BaseModel, Field, ValidationError

from . import KAYA_HOME
from .errors import ConfigIncomplete, DecodeFailure, IoFailure
from .vault import decode_key, decrypt_password, encode_key, encrypt_password, generate_key

logger = logging.getLogger("savebutton.config")

CONFIG_FILE = ".config"
COLLECTION_DIRS = ("anga", "meta", "words")


def resolve_home(home: Optional[Path] = None) -> Path:
    """Return the expanded Kaya home, honouring KAYA_HOME."""
    return (home or Path(KAYA_HOME)).expanduser()


def ensure_directories(home: Path) -> None:
    """Create the anga/meta/words directories if missing."""
    for name in COLLECTION_DIRS:
        (home / name).mkdir(parents=True, exist_ok=True)


class Credentials(BaseModel):
    """Decrypted account credentials, held only in memory."""

    server: str
    email: str
    password: str = Field(repr=False)


class Config(BaseModel):
    """Persisted account settings."""

    server: Optional[str] = None
    email: Optional[str] = None
    encrypted_password: Optional[str] = None
    encryption_key: Optional[str] = None

    @property
    def has_password(self) -> bool:
        return self.encrypted_password is not None

    @property
    def is_complete(self) -> bool:
        return bool(
            self.server
            and self.email
            and self.encrypted_password
            and self.encryption_key
        )

    def password(self) -> str:
        """Decrypt the stored password.

        Raises:
            ConfigIncomplete: If no password is stored.
            CryptoFailure: If the key or ciphertext is bad.
        """
        if not self.encrypted_password or not self.encryption_key:
            raise ConfigIncomplete("No password configured")
        return decrypt_password(
            self.encrypted_password, decode_key(self.encryption_key)
        )

    def credentials(self) -> Optional[Credentials]:
        """Resolve full credentials, or None if anything is missing."""
        if not self.is_complete:
            return None
        return Credentials(
            server=self.server,
            email=self.email,
            password=self.password(),
        )

    def updated(
        self,
        server: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> "Config":
        """Build a replacement record from this one.

        Server and email fall back to the current values. A new
        password is encrypted under a freshly generated key; without
        one, the existing ciphertext and key are carried over as a pair.
        """
        if password is not None:
            key = generate_key()
            encrypted, key_text = encrypt_password(password, key), encode_key(key)
        else:
            encrypted, key_text = self.encrypted_password, self.encryption_key

        return Config(
            server=server if server is not None else self.server,
            email=email if email is not None else self.email,
            encrypted_password=encrypted,
            encryption_key=key_text,
        )


def config_path(home: Optional[Path] = None) -> Path:
    return resolve_home(home) / CONFIG_FILE


def load_config(home: Optional[Path] = None) -> Config:
    """Load the account config.

    Args:
        home: Kaya home directory. Defaults to ~/.kaya.

    Returns:
        The stored Config, or an empty one if the file does not exist.

    Raises:
        DecodeFailure: If the file is not a valid config record.
        IoFailure: If the file exists but cannot be read.
    """
    path = config_path(home)
    if not path.exists():
        return Config()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise IoFailure(f"IO error: {exc}") from exc
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise DecodeFailure(f"Invalid config: {exc}") from exc
    try:
        return Config(**data)
    except ValidationError as exc:
        raise DecodeFailure(f"Invalid config: {exc}") from exc


def save_config(config: Config, home: Optional[Path] = None) -> Path:
    """Replace the config file atomically.

    Args:
        config: Record to persist. Unset fields are omitted.
        home: Kaya home directory. Defaults to ~/.kaya.

    Returns:
        Path of the written file.
    """
    home = resolve_home(home)
    path = home / CONFIG_FILE
    encoded = tomli_w.dumps(config.model_dump(exclude_none=True))
    tmp_path: Optional[Path] = None
    try:
        ensure_directories(home)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(home),
            prefix=".config.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(encoded)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise IoFailure(f"IO error: {exc}") from exc

    logger.info("Config saved: server=%s email=%s", config.server, config.email)
    return path
