"""
GVK -> GVR resolution backed by the dynamic client's discoverer.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

import structlog
from cachetools import TTLCache
from kubernetes.client.rest import ApiException
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError

from kubeconverge.exceptions import DiscoveryError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResourceMapping:
    api_version: str
    group: str
    version: str
    kind: str
    resource: str
    namespaced: bool
    handle: Any


class ResourceMapper:
    """Resolves ``(apiVersion, kind)`` to a resource handle.

    Hits are served from a local TTL cache. On a miss the discoverer itself
    refreshes its cache once and searches again before raising, so the mapper
    never invalidates on its own.
    """

    def __init__(self, discoverer: Any, ttl: int = 600, maxsize: int = 512) -> None:
        self._discoverer = discoverer
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.RLock()

    def resolve(self, api_version: str, kind: str) -> ResourceMapping:
        key = (api_version, kind)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        handle = self._lookup(api_version, kind)
        mapping = ResourceMapping(
            api_version=api_version,
            group=handle.group or "",
            version=handle.api_version,
            kind=handle.kind,
            resource=handle.name,
            namespaced=bool(handle.namespaced),
            handle=handle,
        )
        with self._lock:
            self._cache[key] = mapping
        return mapping

    def _lookup(self, api_version: str, kind: str) -> Any:
        try:
            return self._discoverer.get(api_version=api_version, kind=kind)
        except ResourceNotFoundError as exc:
            logger.info("discovery.miss", api_version=api_version, kind=kind)
            # the discoverer was refreshed, drop mappings resolved before it
            with self._lock:
                self._cache.clear()
            raise DiscoveryError(api_version, kind, str(exc)) from exc
        except ResourceNotUniqueError as exc:
            raise DiscoveryError(api_version, kind, "ambiguous kind") from exc
        except ApiException as exc:
            logger.warning("discovery.request_failed", api_version=api_version, kind=kind, status=exc.status)
            raise DiscoveryError(api_version, kind, f"discovery request failed: {exc.status} {exc.reason}") from exc
