"""
Storage Services Package

Snapshot stores for the Durable Backend (JSON file) and the Local Mirror
(client key/value storage), behind one abstract interface.
"""

from aiwallet.services.storage.interface import (
    BackendUnavailableError,
    SnapshotStore,
    StorageError,
    StorageUnavailableError,
)
from aiwallet.services.storage.json_file import JsonFileSnapshotStore
from aiwallet.services.storage.local_storage import (
    DB_KEY,
    USERS_KEY,
    LocalStorage,
    MirrorSnapshotStore,
)

__all__ = [
    # Interface
    "SnapshotStore",
    # Exceptions
    "BackendUnavailableError",
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "JsonFileSnapshotStore",
    "LocalStorage",
    "MirrorSnapshotStore",
    "DB_KEY",
    "USERS_KEY",
]
