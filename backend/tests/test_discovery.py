import threading

import pytest
from kubernetes.client.rest import ApiException

from kubeconverge.exceptions import DiscoveryError
from kubeconverge.services.k8s.discovery import ResourceMapper
from tests.fakes import DEPLOYMENT, NAMESPACE, FakeDiscoverer, FakeResource

WIDGET = FakeResource("example.com", "v1alpha1", "Widget", "widgets", True)


class TestResourceMapper:
    def test_resolves_group_version_kind(self):
        mapping = ResourceMapper(FakeDiscoverer()).resolve("apps/v1", "Deployment")
        assert mapping.group == "apps"
        assert mapping.version == "v1"
        assert mapping.resource == "deployments"
        assert mapping.namespaced is True
        assert mapping.handle is DEPLOYMENT

    def test_cluster_scoped_core_kind(self):
        mapping = ResourceMapper(FakeDiscoverer()).resolve("v1", "Namespace")
        assert mapping.group == ""
        assert mapping.namespaced is False
        assert mapping.handle is NAMESPACE

    def test_hits_are_cached(self):
        discoverer = FakeDiscoverer()
        mapper = ResourceMapper(discoverer)
        first = mapper.resolve("apps/v1", "Deployment")
        second = mapper.resolve("apps/v1", "Deployment")
        assert first is second
        assert discoverer.lookups == 1

    def test_miss_refreshes_once_then_resolves(self):
        discoverer = FakeDiscoverer(hidden=[WIDGET])
        mapping = ResourceMapper(discoverer).resolve("example.com/v1alpha1", "Widget")
        assert mapping.resource == "widgets"
        assert discoverer.invalidations == 1
        assert discoverer.lookups == 1

    def test_second_miss_raises(self):
        discoverer = FakeDiscoverer()
        with pytest.raises(DiscoveryError) as info:
            ResourceMapper(discoverer).resolve("example.com/v1", "Gadget")
        assert discoverer.invalidations == 1
        assert discoverer.lookups == 1
        assert info.value.kind == "Gadget"
        assert info.value.api_version == "example.com/v1"
        assert info.value.status_code == 404

    def test_miss_drops_cached_mappings(self):
        discoverer = FakeDiscoverer()
        mapper = ResourceMapper(discoverer)
        mapper.resolve("apps/v1", "Deployment")
        with pytest.raises(DiscoveryError):
            mapper.resolve("example.com/v1", "Gadget")
        mapper.resolve("apps/v1", "Deployment")
        assert discoverer.lookups == 3
        assert discoverer.invalidations == 1

    def test_discovery_request_failure(self):
        discoverer = FakeDiscoverer()
        discoverer.fail_with = ApiException(status=503, reason="Service Unavailable")
        with pytest.raises(DiscoveryError) as info:
            ResourceMapper(discoverer).resolve("apps/v1", "Deployment")
        assert "503" in info.value.message
        assert isinstance(info.value.__cause__, ApiException)

    def test_concurrent_resolution_is_consistent(self):
        mapper = ResourceMapper(FakeDiscoverer())
        results = []

        def worker():
            results.append(mapper.resolve("apps/v1", "Deployment").resource)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == ["deployments"] * 8
