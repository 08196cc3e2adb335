"""
Multi-kind readiness aggregation.

Checks are ``"<kind>:<pattern>"`` strings. Every item of the kind whose name
matches the pattern (``re.search``) yields one report line; any non-ready
match makes the aggregate false.
"""
from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable

import structlog
from kubernetes.client.rest import ApiException

from kubeconverge.core.logging import colorize
from kubeconverge.exceptions import FetchError
from kubeconverge.schemas.kubernetes import ReadinessRecord

logger = structlog.get_logger(__name__)


class CheckKind(str, enum.Enum):
    DEPLOYMENT = "deployment"
    REPLICA = "replica"
    STATEFUL = "stateful"
    DEMONSET = "demonset"
    SERVICE = "service"


@dataclass(frozen=True)
class CheckExpression:
    kind: CheckKind
    pattern: re.Pattern

    @classmethod
    def parse(cls, raw: Any) -> CheckExpression | None:
        """Return ``None`` for entries without ``:``, with an unknown kind or a bad regex."""
        if not isinstance(raw, str) or ":" not in raw:
            return None
        token, pattern = raw.split(":", 1)
        try:
            kind = CheckKind(token.strip())
            compiled = re.compile(pattern)
        except (ValueError, re.error):
            return None
        return cls(kind=kind, pattern=compiled)


@dataclass
class _Snapshot:
    deployments: list[Any]
    stateful_sets: list[Any]
    daemon_sets: list[Any]
    services: list[Any]

    def items_for(self, kind: CheckKind) -> list[Any]:
        if kind in (CheckKind.DEPLOYMENT, CheckKind.REPLICA):
            return self.deployments
        if kind is CheckKind.STATEFUL:
            return self.stateful_sets
        if kind is CheckKind.DEMONSET:
            return self.daemon_sets
        return self.services


def _name(obj: Any) -> str:
    return obj.metadata.name


def _replica_counts(obj: Any) -> tuple[int, int | None]:
    status = getattr(obj, "status", None)
    spec = getattr(obj, "spec", None)
    current = getattr(status, "ready_replicas", None) or 0
    desired = getattr(spec, "replicas", None)
    return current, desired


def _daemon_counts(obj: Any) -> tuple[int, int]:
    status = getattr(obj, "status", None)
    current = getattr(status, "number_ready", None) or 0
    desired = getattr(status, "desired_number_scheduled", None) or 0
    return current, desired


def _service_ready(obj: Any) -> bool:
    if getattr(obj.spec, "type", None) != "LoadBalancer":
        return True
    load_balancer = getattr(obj.status, "load_balancer", None) if obj.status else None
    return bool(getattr(load_balancer, "ingress", None))


class ReadinessAggregator:
    """Read-evaluate-render pass over one namespace; keeps no state between calls."""

    def __init__(self, cluster: Any, colors: bool = True) -> None:
        self.cluster = cluster
        self.colors = colors

    def _tag(self, ready: bool) -> str:
        if not self.colors:
            return "Ready" if ready else "Not Ready"
        return colorize("Ready", "INFO") if ready else colorize("Not Ready", "ERROR")

    def _fetch(self, namespace: str) -> _Snapshot:
        listers: list[tuple[str, Callable[[str], list[Any]]]] = [
            ("deployments", self.cluster.list_deployments),
            ("statefulsets", self.cluster.list_stateful_sets),
            ("daemonsets", self.cluster.list_daemon_sets),
            ("services", self.cluster.list_services),
        ]
        fetched: list[list[Any]] = []
        for kind, lister in listers:
            try:
                fetched.append(list(lister(namespace)))
            except ApiException as exc:
                logger.warning("readiness.fetch_failed", kind=kind, namespace=namespace, status=exc.status)
                raise FetchError(kind, namespace, exc) from exc
        return _Snapshot(*fetched)

    def _evaluate(self, check: CheckExpression, obj: Any) -> ReadinessRecord:
        token = check.kind.value
        name = _name(obj)
        if check.kind is CheckKind.SERVICE:
            ready = _service_ready(obj)
            return ReadinessRecord(kind=token, name=name, ready=ready, line=f"{token}: {name} {self._tag(ready)}")

        if check.kind is CheckKind.DEMONSET:
            current, desired = _daemon_counts(obj)
            ready = current == desired
        else:
            current, desired = _replica_counts(obj)
            ready = desired is not None and current == desired
        shown = "?" if desired is None else desired
        line = f"{token}: {name} ({current}/{shown}) {self._tag(ready)}"
        return ReadinessRecord(kind=token, name=name, current=current, desired=desired, ready=ready, line=line)

    def collect(self, namespace: str, checks: Iterable[Any]) -> list[ReadinessRecord]:
        """One record per (check, matching resource), in check then list order."""
        snapshot = self._fetch(namespace)
        records: list[ReadinessRecord] = []
        for raw in checks:
            check = CheckExpression.parse(raw)
            if check is None:
                logger.warning("readiness.malformed_check", check=raw)
                continue
            for obj in snapshot.items_for(check.kind):
                if check.pattern.search(_name(obj)):
                    records.append(self._evaluate(check, obj))
        return records

    def check(self, namespace: str, checks: Iterable[Any], want_none_running: bool = False) -> tuple[bool, list[str]]:
        records = self.collect(namespace, checks)
        report = [r.line for r in records]
        if want_none_running:
            logger.info("readiness.none_running", namespace=namespace, matched=len(report))
            return len(report) == 0, report
        all_ready = all(r.ready for r in records)
        logger.info("readiness.checked", namespace=namespace, matched=len(report), all_ready=all_ready)
        return all_ready, report
