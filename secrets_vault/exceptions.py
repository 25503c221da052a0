"""
Vault Exceptions — error kinds raised by the secrets vault core.

Every error is terminal for the operation that raised it; nothing is retried.
A missing secret is never an error: lookups return ``None`` instead.
"""
from typing import Optional


class VaultError(Exception):
    """Base class for all vault errors."""


class InvalidKeySize(VaultError, ValueError):
    """Key material is not exactly the expected number of bytes."""

    def __init__(self, expected: int, found: int):
        self.expected = expected
        self.found = found
        super().__init__(
            f"Invalid key size: expected {expected} bytes, found {found} bytes"
        )


class EncryptionFailed(VaultError):
    """The AEAD primitive refused to encrypt."""


class DecryptionFailed(VaultError):
    """Authentication failed: wrong key, tampered or truncated envelope.

    ``secret`` names the offending secret when raised during key rotation.
    """

    def __init__(self, message: str, secret: Optional[str] = None):
        self.secret = secret
        super().__init__(message)


class InvalidDataFormat(VaultError, ValueError):
    """Encrypted data is structurally malformed (e.g. too short for a nonce)."""


class InvalidSecretKey(VaultError, ValueError):
    """Secret name is empty, too long, or contains a NUL character."""


class KeyLoadError(VaultError):
    """Master key material could not be obtained from its source."""


class PersistenceFailure(VaultError):
    """Reading or writing the vault file failed (I/O or serialization)."""


class AuditError(PersistenceFailure):
    """The audit sink could not record an operation."""


class KeyReleased(VaultError, ValueError):
    """The master key handle was closed and its buffer zeroed."""
