# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest

from aiwallet.models.results import HealthStatus
from aiwallet.services.accounts import AccountService
from aiwallet.services.availability import AvailabilityProber
from aiwallet.services.storage import (
    BackendUnavailableError,
    JsonFileSnapshotStore,
    LocalStorage,
    MirrorSnapshotStore,
)
from aiwallet.sync import LocalMirror, SyncFacade


class FakeRemote:
    """
    Stands in for RemoteAccountClient.

    Runs the real account rules over an in-memory store, so it answers like
    the API server would. Flip `available` to simulate a dead server.
    """

    def __init__(self, base_url: str = "http://localhost:3000"):
        self.base_url = base_url
        self.service = AccountService(MirrorSnapshotStore(LocalStorage()))
        self.available = True
        self.calls = []

    def health(self, timeout_ms=None):
        self.calls.append("health")
        if not self.available:
            raise BackendUnavailableError("connection refused")
        return HealthStatus(status="ok", server="available")

    def __getattr__(self, name):
        target = getattr(self.service, name)

        def call(*args, **kwargs):
            self.calls.append(name)
            if not self.available:
                raise BackendUnavailableError("connection refused")
            return target(*args, **kwargs)

        return call


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def json_store(tmp_path):
    """Snapshot store on a fresh users.json"""
    return JsonFileSnapshotStore(tmp_path / "users.json")


@pytest.fixture
def accounts(json_store):
    """Account rules over the JSON file"""
    return AccountService(json_store)


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(tmp_path / "local_storage.json")


@pytest.fixture
def mirror(local_storage):
    return LocalMirror(local_storage)


# =============================================================================
# FACADE FIXTURES
# =============================================================================

@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def remote_factory():
    """Build extra fake backends, e.g. on a non-local host"""
    return FakeRemote


@pytest.fixture
def facade(remote, mirror):
    prober = AvailabilityProber(remote)
    return SyncFacade(remote, mirror, prober)


@pytest.fixture
def registered_alice(accounts):
    """Alice registered on the JSON store; returns her user id"""
    result = accounts.register("a@x.com", "alice", "password1")
    assert result.success
    return result.user_id
