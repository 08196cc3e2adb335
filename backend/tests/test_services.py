import pytest

from kubeconverge.exceptions import AppException
from kubeconverge.services.k8s.service_operations import get_service_ip
from tests.fakes import service


class TestGetServiceIp:
    def test_load_balancer_entries_per_ingress(self, cluster):
        cluster.seed(
            "services",
            "ns",
            service("web", "LoadBalancer", ingress_ips=("1.1.1.1", "2.2.2.2"), cluster_ips=("10.0.0.1",), ports=(80, 443)),
        )
        details = get_service_ip(cluster, "ns", "web")
        assert [(d.service_type, d.ip, d.port) for d in details] == [
            ("LoadBalancer", "1.1.1.1", 80),
            ("LoadBalancer", "2.2.2.2", 80),
        ]

    def test_cluster_ip_entries_without_ingress(self, cluster):
        cluster.seed("services", "ns", service("db", cluster_ips=("10.0.0.5", "fd00::5")))
        details = get_service_ip(cluster, "ns", "^db$")
        assert [(d.service_name, d.service_type, d.ip, d.port) for d in details] == [
            ("db", "ClusterIP", "10.0.0.5", None),
            ("db", "ClusterIP", "fd00::5", None),
        ]

    def test_only_matching_services(self, cluster):
        cluster.seed(
            "services",
            "ns",
            service("api", cluster_ips=("10.0.0.1",), ports=(8080,)),
            service("cache", cluster_ips=("10.0.0.2",)),
        )
        assert [d.service_name for d in get_service_ip(cluster, "ns", "api")] == ["api"]
        assert len(get_service_ip(cluster, "ns", "")) == 2

    def test_headless_service_without_ips(self, cluster):
        cluster.seed("services", "ns", service("headless"))
        assert get_service_ip(cluster, "ns", "headless") == []

    def test_invalid_pattern(self, cluster):
        with pytest.raises(AppException) as info:
            get_service_ip(cluster, "ns", "(")
        assert info.value.code == "INVALID_PATTERN"
        assert cluster.list_calls == []
