"""Services package."""

from aiwallet.services.accounts import AccountService
from aiwallet.services.availability import AvailabilityProber
from aiwallet.services.remote import RemoteAccountClient
from aiwallet.services.storage import (
    BackendUnavailableError,
    JsonFileSnapshotStore,
    LocalStorage,
    MirrorSnapshotStore,
    SnapshotStore,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    # Account rules
    "AccountService",
    # Remote backend
    "AvailabilityProber",
    "RemoteAccountClient",
    # Storage services
    "BackendUnavailableError",
    "JsonFileSnapshotStore",
    "LocalStorage",
    "MirrorSnapshotStore",
    "SnapshotStore",
    "StorageError",
    "StorageUnavailableError",
]
