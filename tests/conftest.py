"""Shared fixtures for the secrets vault tests."""
import pytest

from secrets_vault.audit import AuditLogger
from secrets_vault.vault.crypto import MasterKey
from secrets_vault.vault.store import SecretVault


@pytest.fixture
def raw_key():
    """A fixed 32-byte key."""
    return bytes(range(32))


@pytest.fixture
def other_key():
    """A second, different 32-byte key."""
    return bytes([42] * 32)


@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "vault.json"


@pytest.fixture
def audit_path(tmp_path):
    return tmp_path / "audit.log"


@pytest.fixture
def vault(raw_key, vault_path, audit_path):
    """A fresh vault with audit logging enabled."""
    v = SecretVault(MasterKey(raw_key), vault_path, AuditLogger(audit_path))
    yield v
    v.close()
