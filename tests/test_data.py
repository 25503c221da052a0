"""
Tests for the vault data model and its JSON file codec.
"""
import base64
from datetime import datetime, timezone

import orjson
import pytest
from pydantic import ValidationError

from secrets_vault.data import (
    MAX_NAME_BYTES,
    SecretEntry,
    VaultData,
    validate_secret_name,
)
from secrets_vault.exceptions import InvalidSecretKey, PersistenceFailure


def make_entry(version: int, envelope: bytes = b"\x00" * 28) -> SecretEntry:
    return SecretEntry(
        envelope=envelope,
        version=version,
        created_at=datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc),
    )


# --- Test Secret Names ---

class TestSecretNames:
    """Tests for secret name validation."""

    @pytest.mark.parametrize("name", ["a", "db/password", "API_KEY", "ключ", "x" * MAX_NAME_BYTES])
    def test_valid_names(self, name):
        validate_secret_name(name)

    @pytest.mark.parametrize("name", ["", "nul\x00byte", "x" * (MAX_NAME_BYTES + 1)])
    def test_invalid_names(self, name):
        with pytest.raises(InvalidSecretKey):
            validate_secret_name(name)

    def test_length_counts_utf8_bytes(self):
        """Test the limit applies to the encoded size, not characters."""
        name = "é" * 129  # 258 bytes
        with pytest.raises(InvalidSecretKey):
            validate_secret_name(name)


# --- Test SecretEntry ---

class TestSecretEntry:
    """Tests for the immutable SecretEntry model."""

    def test_entry_is_frozen(self):
        entry = make_entry(1)
        with pytest.raises(ValidationError):
            entry.version = 2

    def test_version_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_entry(0)

    def test_created_at_defaults_to_utc_now(self):
        entry = SecretEntry(envelope=b"x", version=1)
        assert entry.created_at.tzinfo is not None

    def test_envelope_serialized_as_base64(self):
        entry = make_entry(1, envelope=b"\xff\x00binary")
        dumped = entry.model_dump(mode="json")
        assert dumped["envelope"] == base64.b64encode(b"\xff\x00binary").decode("ascii")
        # python mode keeps raw bytes
        assert entry.model_dump()["envelope"] == b"\xff\x00binary"

    def test_invalid_base64_rejected(self):
        with pytest.raises(ValidationError):
            SecretEntry.model_validate({"envelope": "not base64!", "version": 1})


# --- Test VaultData ---

class TestVaultData:
    """Tests for VaultData helpers and validation."""

    def test_empty(self):
        data = VaultData()
        assert data.secrets == {}
        assert data.names() == set()
        assert data.latest("missing") is None
        assert data.next_version("missing") == 1

    def test_helpers(self):
        data = VaultData(secrets={"k": [make_entry(1), make_entry(2)]})
        assert data.latest("k").version == 2
        assert data.find("k", 1).version == 1
        assert data.find("k", 3) is None
        assert data.next_version("k") == 3
        assert data.total_versions() == 2
        assert data.history("missing") == []

    def test_empty_history_means_absent(self):
        data = VaultData(secrets={"gone": [], "k": [make_entry(1)]})
        assert data.names() == {"k"}
        assert "gone" not in data.secrets

    def test_versions_must_increase(self):
        with pytest.raises(ValidationError):
            VaultData(secrets={"k": [make_entry(2), make_entry(1)]})
        with pytest.raises(ValidationError):
            VaultData(secrets={"k": [make_entry(1), make_entry(1)]})

    def test_invalid_name_rejected(self):
        with pytest.raises(ValidationError):
            VaultData(secrets={"": [make_entry(1)]})


# --- Test Encode/Decode ---

class TestEncodeDecode:
    """Tests for the persisted JSON format."""

    def test_encode_layout(self):
        data = VaultData(secrets={"k": [make_entry(1, envelope=b"abc")]})
        parsed = orjson.loads(data.encode())
        assert list(parsed.keys()) == ["secrets"]
        record = parsed["secrets"]["k"][0]
        assert record["envelope"] == "YWJj"
        assert record["version"] == 1
        assert record["created_at"].startswith("2024-05-01T12:30:15.123456")

    def test_encode_decode_is_lossless(self):
        original = VaultData(secrets={
            "a": [make_entry(1, b"\x01" * 30), make_entry(2, b"\x02" * 40)],
            "b": [make_entry(1, b"")],
        })
        restored = VaultData.decode(original.encode())
        assert restored == original
        assert restored.secrets["a"][1].envelope == b"\x02" * 40

    @pytest.mark.parametrize("raw", [b"", b"   \n"])
    def test_decode_empty_is_empty_vault(self, raw):
        assert VaultData.decode(raw) == VaultData()

    def test_decode_bad_json(self):
        with pytest.raises(PersistenceFailure):
            VaultData.decode(b"{not json")

    def test_decode_bad_structure(self):
        with pytest.raises(PersistenceFailure):
            VaultData.decode(b'{"secrets": {"k": [{"version": 1}]}}')
