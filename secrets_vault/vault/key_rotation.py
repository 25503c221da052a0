"""
Vault Key Rotation — Re-encryption of every stored version under a new key.

The rotation pass never touches the live vault data: it builds a complete
re-encrypted copy and only returns it once every version succeeded. The
caller persists and swaps in the copy; on any failure the copy is simply
dropped, so a vault file is never left half old-key, half new-key.

Security Note:
    Plaintext exists in memory only during re-encryption of each entry.
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Union

from ..data import SecretEntry, VaultData
from ..exceptions import DecryptionFailed, InvalidDataFormat
from .crypto import BytesLike, MasterKey, decrypt, encrypt

logger = logging.getLogger("secrets_vault")

KeyLike = Union[MasterKey, BytesLike]


def rotate_master_key(
    data: VaultData,
    old_key: KeyLike,
    new_key: KeyLike,
) -> tuple[VaultData, dict]:
    """Re-encrypt all secret versions from old_key to new_key.

    Args:
        data: Current vault data, encrypted under old_key. Not modified.
        old_key: Master key the envelopes are currently encrypted under.
        new_key: Master key to re-encrypt every envelope under.

    Returns:
        Tuple of (re-encrypted VaultData, stats dict with keys:
        secrets, versions).

    Raises:
        DecryptionFailed: If any version cannot be decrypted; the error
            names the offending secret.
    """
    stats = {"secrets": 0, "versions": 0}
    staged: dict[str, list[SecretEntry]] = {}

    logger.info(
        "Starting key rotation (%d secret(s), %d version(s))",
        len(data.secrets), data.total_versions(),
    )

    for name, history in data.secrets.items():
        rotated: list[SecretEntry] = []
        for entry in history:
            try:
                plaintext = decrypt(old_key, entry.envelope)
            except (DecryptionFailed, InvalidDataFormat) as err:
                logger.error(
                    "Key rotation aborted: cannot decrypt secret key=%s version=%d",
                    name, entry.version,
                )
                raise DecryptionFailed(
                    f"Failed to decrypt secret '{name}' (version {entry.version}) "
                    f"during rotation: {err}",
                    secret=name,
                ) from err
            rotated.append(
                entry.model_copy(update={"envelope": encrypt(new_key, plaintext)})
            )
            stats["versions"] += 1
        staged[name] = rotated
        stats["secrets"] += 1

    logger.info("Key rotation staged: %s", stats)
    return VaultData(secrets=staged), stats
