"""Secrets Vault.

Local secrets store with per-secret version history and master key rotation.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    InvalidKeySize,
    KeyReleased,
    EncryptionFailed,
    DecryptionFailed,
    InvalidDataFormat,
    InvalidSecretKey,
    KeyLoadError,
    PersistenceFailure,
    AuditError,
)
from .data import SecretEntry, VaultData
from .audit import AuditLogger, Operation
from .vault import (
    SecretVault,
    MasterKey,
    KeySource,
    VaultConfig,
    encrypt,
    decrypt,
    generate_master_key,
    rotate_master_key,
)

__all__ = (
    "__version__",
    "VaultError",
    "InvalidKeySize",
    "KeyReleased",
    "EncryptionFailed",
    "DecryptionFailed",
    "InvalidDataFormat",
    "InvalidSecretKey",
    "KeyLoadError",
    "PersistenceFailure",
    "AuditError",
    "SecretEntry",
    "VaultData",
    "AuditLogger",
    "Operation",
    "SecretVault",
    "MasterKey",
    "KeySource",
    "VaultConfig",
    "encrypt",
    "decrypt",
    "generate_master_key",
    "rotate_master_key",
)
