"""Sync layer: the local mirror and the facade over both stores."""

from aiwallet.sync.facade import SyncFacade
from aiwallet.sync.mirror import SESSION_KEYS, LocalMirror

__all__ = ["LocalMirror", "SESSION_KEYS", "SyncFacade"]
