"""
Cluster handle: builds the API client once from explicit settings and hands out
typed and dynamic clients plus the shared discovery mapper.
"""
from __future__ import annotations

import threading
from typing import Any

import structlog
from kubernetes import client, config
from kubernetes.client import ApiClient
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient

from kubeconverge.config import ClusterSettings
from kubeconverge.exceptions import ClusterConfigError
from kubeconverge.services.k8s.discovery import ResourceMapper

logger = structlog.get_logger(__name__)


def build_api_client(settings: ClusterSettings) -> ApiClient:
    """Create an ``ApiClient`` from kubeconfig or bearer-token settings."""
    if settings.connection_mode == "token":
        if not settings.host or not settings.bearer_token:
            raise ClusterConfigError("token connection mode requires host and bearer token")
        configuration = client.Configuration()
        configuration.host = settings.host
        configuration.verify_ssl = not settings.insecure_skip_verify
        configuration.api_key = {"authorization": f"Bearer {settings.bearer_token}"}
        logger.info("cluster.client_created", mode="token", host=settings.host)
        return client.ApiClient(configuration)

    path = settings.resolved_config_path()
    try:
        api_client = config.new_client_from_config(config_file=path, context=settings.context_name)
    except (ConfigException, OSError) as exc:
        raise ClusterConfigError(
            f"unable to load kube config {path} with context {settings.context_name}: {exc}",
            details={"config_path": path, "context": settings.context_name},
        ) from exc
    if settings.insecure_skip_verify:
        api_client.configuration.verify_ssl = False
    logger.info("cluster.client_created", mode="kubeconfig", config_path=path, context=settings.context_name)
    return api_client


class ClusterHandle:
    """Read-only after construction; safe to share across threads."""

    def __init__(self, settings: ClusterSettings, api_client: ApiClient | None = None) -> None:
        self.settings = settings
        self._lock = threading.RLock()
        self._api_client = api_client
        self._core_v1: client.CoreV1Api | None = None
        self._apps_v1: client.AppsV1Api | None = None
        self._dynamic: DynamicClient | None = None
        self._mapper: ResourceMapper | None = None

    @property
    def request_timeout(self) -> float | None:
        return self.settings.request_timeout_seconds

    @property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            with self._lock:
                if self._api_client is None:
                    self._api_client = build_api_client(self.settings)
        return self._api_client

    def core_v1(self) -> client.CoreV1Api:
        if self._core_v1 is None:
            with self._lock:
                if self._core_v1 is None:
                    self._core_v1 = client.CoreV1Api(self.api_client)
        return self._core_v1

    def apps_v1(self) -> client.AppsV1Api:
        if self._apps_v1 is None:
            with self._lock:
                if self._apps_v1 is None:
                    self._apps_v1 = client.AppsV1Api(self.api_client)
        return self._apps_v1

    def dynamic(self) -> DynamicClient:
        if self._dynamic is None:
            with self._lock:
                if self._dynamic is None:
                    self._dynamic = DynamicClient(self.api_client)
        return self._dynamic

    @property
    def mapper(self) -> ResourceMapper:
        if self._mapper is None:
            with self._lock:
                if self._mapper is None:
                    self._mapper = ResourceMapper(
                        self.dynamic().resources,
                        ttl=self.settings.discovery_cache_ttl_seconds,
                    )
        return self._mapper

    # ---------------------------
    # Listing helpers
    # ---------------------------

    def _list_kwargs(self) -> dict[str, Any]:
        return {"_request_timeout": self.request_timeout}

    def list_deployments(self, namespace: str) -> list[Any]:
        return self.apps_v1().list_namespaced_deployment(namespace, **self._list_kwargs()).items

    def list_stateful_sets(self, namespace: str) -> list[Any]:
        return self.apps_v1().list_namespaced_stateful_set(namespace, **self._list_kwargs()).items

    def list_daemon_sets(self, namespace: str) -> list[Any]:
        return self.apps_v1().list_namespaced_daemon_set(namespace, **self._list_kwargs()).items

    def list_services(self, namespace: str) -> list[Any]:
        return self.core_v1().list_namespaced_service(namespace, **self._list_kwargs()).items

    def list_pods(self, namespace: str) -> list[Any]:
        return self.core_v1().list_namespaced_pod(namespace, **self._list_kwargs()).items

    def list_secrets(self, namespace: str) -> list[Any]:
        return self.core_v1().list_namespaced_secret(namespace, **self._list_kwargs()).items

    def close(self) -> None:
        with self._lock:
            if self._api_client is not None:
                self._api_client.close()
            self._api_client = None
            self._core_v1 = None
            self._apps_v1 = None
            self._dynamic = None
            self._mapper = None

    def __enter__(self) -> "ClusterHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
