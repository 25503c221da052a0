"""
Vault Configuration — Master key loading and validated settings.

A master key is supplied as one of:
    raw bytes            KeySource.from_bytes(b"...32 bytes...")
    environment variable KeySource.from_env("VAULT_MASTER_KEY")
    key file             KeySource.from_file("master.key")

Environment variables and key files hold the standard base64 encoding of
exactly 32 bytes.

Security Note:
    Never log key material. Only log the key source kind and its name/path.
"""
import os
import base64
import binascii
import secrets
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..exceptions import KeyLoadError
from .crypto import KEY_LENGTH, MasterKey

logger = logging.getLogger("secrets_vault")

DEFAULT_VAULT_PATH = "vault.json"


def _decode_key(encoded: str, origin: str) -> bytes:
    try:
        return base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as err:
        raise KeyLoadError(f"Base64 decode error in {origin}: {err}") from err


class KeySource:
    """Where to obtain master key material from.

    Use one of the ``from_*`` constructors, then ``load()`` to resolve
    it into a :class:`MasterKey`.
    """

    __slots__ = ("kind", "value")

    BYTES = "bytes"
    ENV = "env"
    FILE = "file"

    def __init__(self, kind: str, value: Union[bytes, str, Path]):
        if kind not in (self.BYTES, self.ENV, self.FILE):
            raise ValueError(f"Unsupported key source: {kind}")
        self.kind = kind
        self.value = value

    @classmethod
    def from_bytes(cls, raw: Union[bytes, bytearray]) -> "KeySource":
        return cls(cls.BYTES, bytes(raw))

    @classmethod
    def from_env(cls, var_name: str) -> "KeySource":
        return cls(cls.ENV, var_name)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "KeySource":
        return cls(cls.FILE, Path(path))

    def load(self) -> MasterKey:
        """Resolve this source into a MasterKey.

        Returns:
            MasterKey owning a copy of the 32 key bytes.

        Raises:
            KeyLoadError: Missing variable, unreadable file or malformed base64.
            InvalidKeySize: If the material does not decode to 32 bytes.
        """
        if self.kind == self.ENV:
            encoded = os.environ.get(self.value)
            if encoded is None:
                raise KeyLoadError(
                    f"Environment variable {self.value} not found"
                )
            key_bytes = _decode_key(encoded, f"environment variable {self.value}")
        elif self.kind == self.FILE:
            try:
                encoded = Path(self.value).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as err:
                raise KeyLoadError(
                    f"Failed to read key file {self.value}: {err}"
                ) from err
            key_bytes = _decode_key(encoded, f"key file {self.value}")
        else:
            key_bytes = self.value
        logger.debug("Loaded master key from %s source", self.kind)
        return MasterKey(key_bytes)

    def __repr__(self) -> str:
        if self.kind == self.BYTES:
            return "<KeySource bytes>"
        return f"<KeySource {self.kind}={self.value}>"


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return as base64 string.

    This is a utility for operators to generate new keys.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


def write_key_file(path: Union[str, Path], encoded_key: str) -> Path:
    """Write a base64 key to path, readable by the owner only.

    Raises:
        KeyLoadError: If the file cannot be written.
    """
    path = Path(path)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(encoded_key)
            fp.write("\n")
        os.chmod(path, 0o600)
    except OSError as err:
        raise KeyLoadError(f"Failed to write key file {path}: {err}") from err
    logger.info("Master key written to %s", path)
    return path


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    vault_path: Path = Field(default=Path(DEFAULT_VAULT_PATH))
    audit_path: Optional[Path] = None
    key_env: Optional[str] = None
    key_path: Optional[Path] = None
    cipher_backend: str = Field(default="aesgcm")

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @model_validator(mode="after")
    def validate_key_source(self) -> "VaultConfig":
        """Ensure exactly one master key source is configured."""
        if (self.key_env is None) == (self.key_path is None):
            raise ValueError(
                "Exactly one of key_env or key_path must be configured"
            )
        return self

    def key_source(self) -> KeySource:
        """Return the configured master key source."""
        if self.key_path is not None:
            return KeySource.from_file(self.key_path)
        return KeySource.from_env(self.key_env)

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        return cls(
            vault_path=os.environ.get("VAULT_PATH", DEFAULT_VAULT_PATH),
            audit_path=os.environ.get("VAULT_AUDIT_PATH") or None,
            key_env=os.environ.get("VAULT_KEY_ENV") or None,
            key_path=os.environ.get("VAULT_KEY_PATH") or None,
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
        )
