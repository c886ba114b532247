"""
Abstract Snapshot Storage Interface

DESIGN DECISION: Both account stores (the server's JSON file and the
client's local mirror) hold the same document: users, plans and share
grants. Rather than two sets of CRUD code, each store only knows how to
load and save the whole snapshot, and the account rules live once in
AccountService.

This keeps the read-modify-write shape of the stores explicit:
every mutation is load -> change -> save of the entire snapshot.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

from aiwallet.models.account import AccountSnapshot


class SnapshotStore(ABC):
    """
    Abstract interface for a whole-document account store.

    Implementations must make `load` tolerate a missing or unreadable
    document (returning an empty snapshot) and make `save` raise
    StorageUnavailableError when the write cannot be completed.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def load(self) -> AccountSnapshot:
        """
        Read the current snapshot.

        Returns:
            The stored snapshot, or an empty one if nothing is stored yet
        """
        pass

    @abstractmethod
    def save(self, snapshot: AccountSnapshot) -> None:
        """
        Replace the stored snapshot.

        Raises:
            StorageUnavailableError: If the write is rejected
        """
        pass

    def read(self) -> AccountSnapshot:
        """Load a snapshot for a read-only operation."""
        with self._lock:
            return self.load()

    @contextmanager
    def transaction(self) -> Iterator[AccountSnapshot]:
        """
        Load, yield for mutation, then save if the body touched it.

        The store lock is held for the whole read-modify-write, so
        transactions on one store object never interleave. Nothing is
        saved if the body raises.
        """
        with self._lock:
            snapshot = self.load()
            yield snapshot
            if snapshot.is_dirty:
                self.save(snapshot)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The store rejected a write (quota exceeded, disk error)."""
    pass


class BackendUnavailableError(StorageError):
    """The Durable Backend could not be consulted (network, timeout, bad status)."""
    pass
