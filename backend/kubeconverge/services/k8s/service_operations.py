"""
Service address lookup.
"""
from __future__ import annotations

import re
from typing import Any

import structlog

from kubeconverge.exceptions import AppException
from kubeconverge.schemas.kubernetes import ServiceDetails

logger = structlog.get_logger(__name__)


def _first_port(service: Any) -> int | None:
    ports = getattr(service.spec, "ports", None) or []
    return ports[0].port if ports else None


def get_service_ip(cluster: Any, namespace: str, pattern: str) -> list[ServiceDetails]:
    """Addresses of every service whose name matches ``pattern``.

    Services with load-balancer ingress yield one entry per ingress IP;
    the rest yield one entry per cluster IP.
    """
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise AppException(f"invalid service name pattern: {exc}", status_code=400, code="INVALID_PATTERN") from exc

    details: list[ServiceDetails] = []
    for service in cluster.list_services(namespace):
        name = service.metadata.name
        if not regex.search(name):
            continue
        port = _first_port(service)
        load_balancer = getattr(service.status, "load_balancer", None) if service.status else None
        ingress = getattr(load_balancer, "ingress", None) or []
        if ingress:
            for entry in ingress:
                details.append(ServiceDetails(service_name=name, service_type="LoadBalancer", ip=entry.ip or "", port=port))
        else:
            for ip in getattr(service.spec, "cluster_i_ps", None) or []:
                details.append(ServiceDetails(service_name=name, service_type="ClusterIP", ip=ip, port=port))
    logger.info("services.addresses", namespace=namespace, pattern=pattern, count=len(details))
    return details
