import pytest

from kubeconverge.config import ClusterSettings, get_settings
from tests.fakes import FakeCluster


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for var in ("DRY_RUN", "VERBOSE", "CONNECTION_MODE", "HELM_ENABLED", "LOG_JSON"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def dry_run_cluster() -> FakeCluster:
    return FakeCluster(ClusterSettings(dry_run=True, request_timeout_seconds=5.0))
