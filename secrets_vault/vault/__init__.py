"""Secrets Vault — Versioned secrets encrypted at rest under one master key.

Security Note (Threat Model):
    Secrets are decrypted in process memory while being read or rotated.
    The master key buffer is zeroed on release, but key material that was
    decoded from base64 or copied by the AEAD primitive cannot be wiped
    from Python. This is an accepted limitation; mitigation requires
    HSM/secure enclave integration which is out of scope.
"""

from .store import SecretVault
from .key_rotation import rotate_master_key
from .crypto import MasterKey, encrypt, decrypt
from .config import KeySource, VaultConfig, generate_master_key

__all__ = [
    "SecretVault",
    "rotate_master_key",
    "MasterKey",
    "encrypt",
    "decrypt",
    "KeySource",
    "VaultConfig",
    "generate_master_key",
]
