"""
Client-resident key/value storage (the Local Mirror's persistence).

The browser client keeps its fallback copy of the user list in the
browser's localStorage. LocalStorage reproduces that contract for a Python
client: string keys, string values, a size quota, and every mutation
flushed to disk immediately.

MirrorSnapshotStore lays the account snapshot out over those keys:
- `aiwallet_users`: JSON array of user records
- `aiwallet_db`: JSON object with plans, share grants and metadata
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from aiwallet.models.account import AccountSnapshot, PlanRecord, ShareGrant, UserRecord
from aiwallet.services.storage.interface import SnapshotStore, StorageUnavailableError


logger = structlog.get_logger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024

USERS_KEY = "aiwallet_users"
DB_KEY = "aiwallet_db"


class LocalStorage:
    """
    Persistent string key/value storage with a quota.

    With `path=None` the storage lives in memory only.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
    ):
        self.path = Path(path) if path else None
        self.quota_bytes = quota_bytes
        self._lock = threading.RLock()
        self._items: dict[str, str] = self._read_file()

    def _read_file(self) -> dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            logger.error("local_storage_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.error("local_storage_unreadable", path=str(self.path), error="not an object")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    @staticmethod
    def _size_of(items: Mapping[str, str]) -> int:
        return sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in items.items())

    def _commit(self, items: dict[str, str]) -> None:
        size = self._size_of(items)
        if size > self.quota_bytes:
            raise StorageUnavailableError(
                f"Local storage quota exceeded ({size} > {self.quota_bytes} bytes)"
            )
        if self.path is not None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(items, f, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except OSError as e:
                raise StorageUnavailableError(f"Local storage write failed: {e}")
        self._items = items

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.set_items({key: value})

    def set_items(self, values: Mapping[str, str]) -> None:
        """Write several keys in one flush; either all land or none do."""
        with self._lock:
            items = dict(self._items)
            items.update(values)
            self._commit(items)

    def remove_item(self, key: str) -> None:
        self.remove_items([key])

    def remove_items(self, keys) -> None:
        doomed = set(keys)
        with self._lock:
            items = {k: v for k, v in self._items.items() if k not in doomed}
            if len(items) != len(self._items):
                self._commit(items)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._commit({})

    def __len__(self) -> int:
        return len(self._items)


class MirrorSnapshotStore(SnapshotStore):
    """Account snapshot stored across the mirror's localStorage keys."""

    def __init__(self, storage: LocalStorage):
        super().__init__()
        self.storage = storage

    def _load_json(self, key: str, default):
        raw = self.storage.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("mirror_key_unreadable", key=key, error=str(e))
            return default

    def load(self) -> AccountSnapshot:
        users_raw = self._load_json(USERS_KEY, [])
        db_raw = self._load_json(DB_KEY, {})
        if not isinstance(users_raw, list):
            users_raw = []
        if not isinstance(db_raw, dict):
            db_raw = {}

        snapshot = AccountSnapshot(
            api_version=db_raw.get("apiVersion", "1.0"),
            last_updated=db_raw.get("lastUpdated"),
        )
        snapshot.users = self._parse_each(users_raw, UserRecord)
        snapshot.plans = self._parse_each(db_raw.get("plans", []), PlanRecord)
        snapshot.shared_plans = self._parse_each(db_raw.get("sharedPlans", []), ShareGrant)
        return snapshot

    @staticmethod
    def _parse_each(items, model):
        parsed = []
        for item in items or []:
            try:
                parsed.append(model.model_validate(item))
            except ValidationError:
                continue  # Skip malformed records
        return parsed

    def save(self, snapshot: AccountSnapshot) -> None:
        wire = snapshot.to_wire()
        self.storage.set_items({
            USERS_KEY: json.dumps(wire["users"], ensure_ascii=False),
            DB_KEY: json.dumps({
                "plans": wire["plans"],
                "sharedPlans": wire["sharedPlans"],
                "apiVersion": wire["apiVersion"],
                "lastUpdated": wire["lastUpdated"],
            }, ensure_ascii=False),
        })
