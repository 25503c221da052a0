"""Vault data model.

The whole vault is a single aggregate, ``VaultData``, mapping each secret
name to its append-only history of ``SecretEntry`` versions. It is
serialized wholesale as JSON; envelopes are stored as base64 strings.
"""
import base64
import binascii
from typing import Any, Optional
from datetime import datetime, timezone
import orjson
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)
from .exceptions import InvalidSecretKey, PersistenceFailure


MAX_NAME_BYTES = 256


def validate_secret_name(name: str) -> None:
    """Validate a secret name.

    Raises:
        InvalidSecretKey: If name is empty, longer than 256 bytes once
            UTF-8 encoded, or contains a NUL character.
    """
    if not isinstance(name, str) or not name:
        raise InvalidSecretKey("Secret key cannot be empty")
    if "\x00" in name:
        raise InvalidSecretKey("Secret key cannot contain null bytes")
    if len(name.encode("utf-8")) > MAX_NAME_BYTES:
        raise InvalidSecretKey(
            f"Secret key too long (max {MAX_NAME_BYTES} bytes)"
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SecretEntry(BaseModel):
    """One immutable, numbered version of a secret."""

    model_config = ConfigDict(frozen=True)

    envelope: bytes
    version: int = Field(ge=1)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("envelope", mode="before")
    @classmethod
    def decode_envelope(cls, v: Any) -> Any:
        """Accept the base64 form used on disk."""
        if isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except (binascii.Error, ValueError) as err:
                raise ValueError(f"envelope is not valid base64: {err}") from err
        return v

    @field_serializer("envelope", when_used="json")
    def encode_envelope(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


class VaultData(BaseModel):
    """Secret name -> ordered history of versions."""

    secrets: dict[str, list[SecretEntry]] = Field(default_factory=dict)

    @field_validator("secrets")
    @classmethod
    def validate_histories(
        cls, v: dict[str, list[SecretEntry]]
    ) -> dict[str, list[SecretEntry]]:
        """Check names and strictly increasing versions; drop empty histories."""
        cleaned: dict[str, list[SecretEntry]] = {}
        for name, history in v.items():
            validate_secret_name(name)
            last = 0
            for entry in history:
                if entry.version <= last:
                    raise ValueError(
                        f"versions of {name!r} are not strictly increasing"
                    )
                last = entry.version
            if history:
                cleaned[name] = history
        return cleaned

    # --- Helpers ---

    def history(self, name: str) -> list[SecretEntry]:
        """Return the history for name (empty list if absent)."""
        return self.secrets.get(name, [])

    def latest(self, name: str) -> Optional[SecretEntry]:
        entries = self.secrets.get(name)
        return entries[-1] if entries else None

    def find(self, name: str, version: int) -> Optional[SecretEntry]:
        for entry in self.secrets.get(name, []):
            if entry.version == version:
                return entry
        return None

    def next_version(self, name: str) -> int:
        last = self.latest(name)
        return last.version + 1 if last else 1

    def names(self) -> set[str]:
        return {name for name, entries in self.secrets.items() if entries}

    def total_versions(self) -> int:
        return sum(len(entries) for entries in self.secrets.values())

    # --- Serialization ---

    def encode(self) -> bytes:
        """Serialize to indented JSON bytes.

        Raises:
            PersistenceFailure: Error converting data to json.
        """
        try:
            return orjson.dumps(
                self.model_dump(mode="json"),
                option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS,
            )
        except (TypeError, orjson.JSONEncodeError) as err:
            raise PersistenceFailure(f"Serialization error: {err}") from err

    @classmethod
    def decode(cls, raw: bytes) -> "VaultData":
        """Parse the JSON produced by ``encode``. Empty input is an empty vault.

        Raises:
            PersistenceFailure: Error converting data from json.
        """
        if not raw.strip():
            return cls()
        try:
            return cls.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as err:
            raise PersistenceFailure(f"Serialization error: {err}") from err
