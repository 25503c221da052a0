"""
Vault Crypto Core — Master key handle and the AEAD envelope.

Every secret version is stored as a self-contained envelope:
    [nonce 12B][encrypted_payload + tag 16B]

The master key is used directly as the AEAD key (no derivation step).

Security Note:
    Never log plaintext, ciphertext or key material.
    Nonces are random 96-bit, drawn fresh for every encryption call;
    collision probability is negligible under normal usage.
    The AEAD primitive keeps its own copy of the key while a cipher object
    is alive; only the MasterKey buffer is under our control and zeroed.
"""
import os
import secrets
import logging
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import (
    InvalidKeySize,
    EncryptionFailed,
    DecryptionFailed,
    InvalidDataFormat,
    KeyReleased,
)

logger = logging.getLogger("secrets_vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM / Poly1305 tag
KEY_LENGTH = 32  # AES-256 / ChaCha20

BytesLike = Union[bytes, bytearray, memoryview]


_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def _get_cipher_backend() -> str:
    """Return the AEAD backend name based on VAULT_CIPHER_BACKEND env var."""
    backend = os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm").lower()
    if backend == "chacha20":
        return backend
    return "aesgcm"


# Resolve cipher once at module load to prevent encrypt/decrypt mismatch
# if the env var changes mid-process.
CIPHER_BACKEND = _get_cipher_backend()
CIPHER_CLS = _CIPHERS[CIPHER_BACKEND]


# ---------------------------------------------------------------------------
# Master key handle
# ---------------------------------------------------------------------------

class MasterKey:
    """Owned 32-byte master key whose buffer is zeroed on release.

    The key bytes are copied into a private ``bytearray``. ``close()`` (also
    called from ``__exit__`` and ``__del__``) overwrites that buffer with
    zeros; afterwards the handle refuses to hand out key material.
    """

    __slots__ = ("_buffer", "_closed")

    def __init__(self, key_bytes: BytesLike):
        if len(key_bytes) != KEY_LENGTH:
            raise InvalidKeySize(KEY_LENGTH, len(key_bytes))
        self._buffer = bytearray(key_bytes)
        self._closed = False

    @classmethod
    def generate(cls) -> "MasterKey":
        """Create a handle around a fresh random key."""
        return cls(secrets.token_bytes(KEY_LENGTH))

    @property
    def closed(self) -> bool:
        return self._closed

    def as_bytes(self) -> memoryview:
        """Read-only view over the key buffer.

        Raises:
            KeyReleased: If the key has already been released.
        """
        if self._closed:
            raise KeyReleased("Master key has been released")
        return memoryview(self._buffer).toreadonly()

    def close(self) -> None:
        """Overwrite the key buffer with zeros. Safe to call repeatedly."""
        if self._closed:
            return
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._closed = True

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> "MasterKey":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __del__(self):
        # partially constructed handles have no buffer
        if hasattr(self, "_buffer"):
            self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<MasterKey {state}>"


def _key_view(key: Union[MasterKey, BytesLike]) -> BytesLike:
    if isinstance(key, MasterKey):
        return key.as_bytes()
    if len(key) != KEY_LENGTH:
        raise InvalidKeySize(KEY_LENGTH, len(key))
    return key


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt(key: Union[MasterKey, BytesLike], plaintext: bytes) -> bytes:
    """Encrypt plaintext into a self-contained envelope.

    Format: [nonce 12B][encrypted_payload + tag 16B]

    Args:
        key: MasterKey handle or raw 32-byte key.
        plaintext: Data to encrypt (may be empty).

    Returns:
        Envelope bytes.

    Raises:
        InvalidKeySize: If the key is not 32 bytes.
        KeyReleased: If the MasterKey handle has been closed.
        EncryptionFailed: If the AEAD primitive rejects the input.
    """
    cipher = CIPHER_CLS(_key_view(key))
    nonce = os.urandom(NONCE_SIZE)
    try:
        ct = cipher.encrypt(nonce, bytes(plaintext), None)
    except (ValueError, OverflowError) as err:
        raise EncryptionFailed(f"Encryption failed: {err}") from err
    return nonce + ct


def decrypt(key: Union[MasterKey, BytesLike], envelope: bytes) -> bytes:
    """Decrypt and authenticate an envelope.

    Args:
        key: MasterKey handle or raw 32-byte key.
        envelope: Bytes in format [nonce 12B][payload+tag].

    Returns:
        Decrypted plaintext bytes.

    Raises:
        InvalidKeySize: If the key is not 32 bytes.
        KeyReleased: If the MasterKey handle has been closed.
        InvalidDataFormat: If the envelope cannot even hold a nonce.
        DecryptionFailed: If authentication fails for any reason.
    """
    key_view = _key_view(key)
    if len(envelope) < NONCE_SIZE:
        raise InvalidDataFormat(
            f"envelope too short: {len(envelope)} bytes "
            f"(minimum {NONCE_SIZE} for the nonce)"
        )
    # a truncated tag is indistinguishable from tampering
    if len(envelope) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionFailed("Decryption failed: authentication error")
    cipher = CIPHER_CLS(key_view)
    nonce = envelope[:NONCE_SIZE]
    ct = envelope[NONCE_SIZE:]
    try:
        return cipher.decrypt(nonce, ct, None)
    except InvalidTag:
        raise DecryptionFailed("Decryption failed: authentication error") from None
