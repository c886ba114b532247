"""
Availability Prober

Decides, per call, whether the Durable Backend is worth attempting.

Two checks, both stateless:
1. is_likely_available(): a free heuristic. The backend only exists next to
   a development server, so a non-local host (pure static hosting) means
   "don't even try".
2. probe_liveness(): one GET /api/health under a short timeout. A single
   failure means "unavailable for this call"; there are no retries and no
   cached verdict, because a dev server can start or stop between calls.
"""

from typing import Optional
from urllib.parse import urlparse

import structlog

from aiwallet.config import BackendSettings
from aiwallet.services.remote.client import RemoteAccountClient
from aiwallet.services.storage.interface import BackendUnavailableError


logger = structlog.get_logger(__name__)

DEFAULT_PROBE_TIMEOUT_MS = 1000


class AvailabilityProber:
    def __init__(
        self,
        client: RemoteAccountClient,
        local_hosts: Optional[list[str]] = None,
        remote_enabled: bool = True,
        force_remote: bool = False,
        probe_timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS,
    ):
        self.client = client
        self.local_hosts = [h.lower() for h in (local_hosts or ["localhost", "127.0.0.1"])]
        self.remote_enabled = remote_enabled
        self.force_remote = force_remote
        self.probe_timeout_ms = probe_timeout_ms

    @classmethod
    def from_settings(cls, client: RemoteAccountClient, settings: BackendSettings) -> "AvailabilityProber":
        return cls(
            client,
            local_hosts=settings.local_hosts_list,
            remote_enabled=settings.remote_enabled,
            force_remote=settings.force_remote,
            probe_timeout_ms=settings.probe_timeout_ms,
        )

    @property
    def hostname(self) -> str:
        return (urlparse(self.client.base_url).hostname or "").lower()

    def is_likely_available(self) -> bool:
        if not self.remote_enabled:
            return False
        if self.force_remote:
            return True
        return self.hostname in self.local_hosts

    def probe_liveness(self, timeout_ms: Optional[int] = None) -> bool:
        """True only if /api/health answers `status: ok` within the timeout."""
        try:
            health = self.client.health(timeout_ms=timeout_ms or self.probe_timeout_ms)
        except BackendUnavailableError as e:
            logger.info("liveness_probe_failed", error=str(e))
            return False
        return health.status == "ok"
