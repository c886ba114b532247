"""
JSON File Storage Implementation (the Durable Backend's store of record)

DESIGN DECISION: A single flat JSON document, as the legacy Express
server kept in `users.json`, because:
1. Existing data files load unchanged
2. No database setup required for a personal deployment
3. The file is human-readable and easy to back up

TRADEOFFS:
- Every mutation rewrites the whole file
- Transactions are serialized by a per-process lock; two server processes
  pointed at the same file can still lose each other's writes
- An unreadable or corrupt file loads as an empty snapshot, and the next
  write replaces it; every stored record in the damaged file is lost
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Union

import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from aiwallet.models.account import AccountSnapshot
from aiwallet.services.storage.interface import SnapshotStore, StorageUnavailableError


logger = structlog.get_logger(__name__)


class JsonFileSnapshotStore(SnapshotStore):
    """
    Snapshot store backed by one JSON file.

    A missing, empty or unparseable file reads as an empty snapshot.
    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash mid-write leaves the old file intact.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)

    def load(self) -> AccountSnapshot:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return AccountSnapshot()
        except OSError as e:
            logger.warning("snapshot_read_failed", path=str(self.path), error=str(e))
            return AccountSnapshot()

        if not raw.strip():
            return AccountSnapshot()

        try:
            return AccountSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("snapshot_unreadable", path=str(self.path), error=str(e))
            return AccountSnapshot()

    def save(self, snapshot: AccountSnapshot) -> None:
        payload = json.dumps(snapshot.to_wire(), indent=2, ensure_ascii=False)
        try:
            self._write(payload)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write {self.path}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
