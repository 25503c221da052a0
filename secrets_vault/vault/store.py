"""
SecretVault — Versioned, encrypted secret storage backed by a single file.

Provides the public API for the secrets vault:
- ``set(key, value)`` — encrypt and append a new version, then persist
- ``get(key)`` / ``get_version(key, version)`` — decrypt a version
- ``delete(key)`` — drop a secret and its whole history
- ``list_versions(key)`` / ``list_keys()`` — enumerate stored data
- ``rotate(new_key_source)`` — re-encrypt everything under a new master key

Every mutation rewrites the whole vault file before returning; the audit
record is emitted only once the write has succeeded.

Security Note:
    Never log plaintext or ciphertext values. Only log key names, versions
    and operations. Decrypted values exist in process memory during use.
    Concurrent writers on the same vault path are not coordinated.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Optional, Set, Union

from ..audit import AuditLogger, Operation
from ..data import SecretEntry, VaultData, utcnow, validate_secret_name
from ..exceptions import PersistenceFailure
from .config import KeySource, VaultConfig
from .crypto import CIPHER_BACKEND, MasterKey, decrypt, encrypt
from .key_rotation import rotate_master_key

logger = logging.getLogger("secrets_vault")

KeyInput = Union[MasterKey, KeySource, bytes, bytearray]


def _resolve_key(source: KeyInput) -> MasterKey:
    if isinstance(source, MasterKey):
        return source
    if isinstance(source, KeySource):
        return source.load()
    return MasterKey(source)


class SecretVault:
    """Encrypted vault of versioned secrets under one master key.

    The vault takes ownership of any MasterKey handed to it, including the
    one passed to ``rotate()``: it is zeroed when replaced, when a rotation
    aborts, and when the vault is closed.
    """

    def __init__(
        self,
        master_key: KeyInput,
        path: Union[str, Path],
        audit: Optional[Union[AuditLogger, str, Path]] = None,
    ):
        self._path = Path(path)
        if audit is None or isinstance(audit, AuditLogger):
            self._audit = audit or AuditLogger()
        else:
            self._audit = AuditLogger(audit)
        self._master_key = _resolve_key(master_key)
        try:
            self._data = self._load()
        except PersistenceFailure:
            self._master_key.close()
            raise
        logger.info(
            "Vault loaded from %s: %d secret(s)", self._path, len(self._data.secrets),
        )

    @classmethod
    def from_config(cls, config: VaultConfig) -> "SecretVault":
        """Build a vault from validated configuration.

        Raises:
            ValueError: If the configured cipher differs from the active one.
        """
        if config.cipher_backend != CIPHER_BACKEND:
            raise ValueError(
                f"Configured cipher {config.cipher_backend} does not match "
                f"active cipher {CIPHER_BACKEND} (set VAULT_CIPHER_BACKEND)"
            )
        return cls(
            master_key=config.key_source(),
            path=config.vault_path,
            audit=AuditLogger(config.audit_path),
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> VaultData:
        """Read vault data from disk; a missing file is an empty vault."""
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return VaultData()
        except OSError as err:
            raise PersistenceFailure(
                f"Failed to read vault {self._path}: {err}"
            ) from err
        return VaultData.decode(raw)

    def _write(self, data: VaultData) -> None:
        """Write data to a temp file next to the vault, then rename into place."""
        payload = data.encode()
        directory = self._path.parent
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory,
            )
            with os.fdopen(fd, "wb") as fp:
                fp.write(payload)
                fp.flush()
                os.fsync(fp.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except OSError as err:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceFailure(
                f"Failed to write vault {self._path}: {err}"
            ) from err
        logger.debug("Vault saved to %s", self._path)

    def save(self) -> None:
        """Persist the full vault data.

        Raises:
            PersistenceFailure: On any I/O or serialization error; the
                previous vault file is left in place.
        """
        self._write(self._data)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set(self, key: str, value: Union[bytes, str]) -> int:
        """Encrypt and store a new version of a secret.

        Args:
            key: Secret name (non-empty, max 256 bytes, no NUL).
            value: Secret value; str values are stored UTF-8 encoded.

        Returns:
            The version number assigned to the new value.

        Raises:
            InvalidSecretKey: If key is invalid.
            PersistenceFailure: If the vault could not be saved.
        """
        validate_secret_name(key)
        if isinstance(value, str):
            value = value.encode("utf-8")
        envelope = encrypt(self._master_key, value)
        history = self._data.secrets.setdefault(key, [])
        version = self._data.next_version(key)
        history.append(
            SecretEntry(envelope=envelope, version=version, created_at=utcnow())
        )
        try:
            self.save()
        except PersistenceFailure:
            history.pop()
            if not history:
                del self._data.secrets[key]
            raise
        self._audit.record(Operation.SET, key)
        logger.debug("Vault set: key=%s version=%d", key, version)
        return version

    def get(self, key: str) -> Optional[bytes]:
        """Decrypt and return the latest version of a secret.

        Returns:
            Decrypted value, or None if the secret does not exist.
        """
        self._audit.record(Operation.GET, key)
        entry = self._data.latest(key)
        if entry is None:
            return None
        return decrypt(self._master_key, entry.envelope)

    def get_version(self, key: str, version: int) -> Optional[bytes]:
        """Decrypt and return a specific version of a secret.

        Returns:
            Decrypted value, or None if that version does not exist.
        """
        self._audit.record(Operation.GET, key)
        entry = self._data.find(key, version)
        if entry is None:
            return None
        return decrypt(self._master_key, entry.envelope)

    def delete(self, key: str) -> None:
        """Delete a secret and all its versions. No-op if it does not exist."""
        history = self._data.secrets.pop(key, None)
        if history is None:
            return
        try:
            self.save()
        except PersistenceFailure:
            self._data.secrets[key] = history
            raise
        self._audit.record(Operation.DELETE, key)
        logger.debug("Vault delete: key=%s", key)

    def list_versions(self, key: str) -> list[int]:
        """Return version numbers of a secret in creation order."""
        return [entry.version for entry in self._data.history(key)]

    def list_keys(self) -> Set[str]:
        """Return the names of all stored secrets."""
        return self._data.names()

    def exists(self, key: str) -> bool:
        return self._data.latest(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __len__(self) -> int:
        return len(self._data.names())

    # ------------------------------------------------------------------
    # Key rotation
    # ------------------------------------------------------------------

    def rotate(self, new_key_source: KeyInput) -> dict:
        """Re-encrypt every stored version under a new master key.

        Nothing changes (in memory or on disk) unless every version is
        re-encrypted and the result is saved; only then is the old master
        key replaced and zeroed.

        Args:
            new_key_source: KeySource, MasterKey or raw 32 bytes.

        Returns:
            Rotation stats dict with keys: secrets, versions.

        Raises:
            KeyLoadError: If the new key cannot be loaded.
            DecryptionFailed: If any version fails to decrypt; names the secret.
            PersistenceFailure: If the re-encrypted vault cannot be saved.
        """
        if new_key_source is self._master_key:
            raise ValueError("Cannot rotate to the vault's current key handle")
        new_key = _resolve_key(new_key_source)
        try:
            staged, stats = rotate_master_key(self._data, self._master_key, new_key)
            self._write(staged)
        except Exception:
            new_key.close()
            raise
        old_key = self._master_key
        self._master_key = new_key
        self._data = staged
        old_key.close()
        self._audit.record(Operation.ROTATE, "ALL")
        logger.info("Key rotation complete: %s", stats)
        return stats

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._master_key.closed

    def close(self) -> None:
        """Release the master key (zeroes its buffer)."""
        self._master_key.close()

    def __enter__(self) -> "SecretVault":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<SecretVault path={self._path} secrets={len(self)}>"
