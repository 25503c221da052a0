"""
Vault Audit — append-only record of vault operations.

Each record is one JSON line: ``{"timestamp", "operation", "key"}``.
Only secret names are recorded, never values.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import orjson

from .data import utcnow
from .exceptions import AuditError

logger = logging.getLogger("secrets_vault.audit")


class Operation(str, Enum):
    """Auditable vault operations."""

    SET = "set"
    GET = "get"
    DELETE = "delete"
    ROTATE = "rotate"


class AuditLogger:
    """Append audit records to a JSON-lines file.

    Without a path the records only go to the ``secrets_vault.audit`` logger.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None

    def record(self, operation: Operation, key: str) -> None:
        """Append one audit entry.

        Raises:
            AuditError: If the audit file cannot be written.
        """
        operation = Operation(operation)
        entry = {
            "timestamp": utcnow().isoformat(),
            "operation": operation.value,
            "key": key,
        }
        logger.debug("Audit: operation=%s key=%s", operation.value, key)
        if self.path is None:
            return
        try:
            with open(self.path, "ab") as fp:
                fp.write(orjson.dumps(entry) + b"\n")
        except OSError as err:
            raise AuditError(
                f"Failed to write audit log {self.path}: {err}"
            ) from err

    def __repr__(self) -> str:
        return f"<AuditLogger path={self.path}>"
