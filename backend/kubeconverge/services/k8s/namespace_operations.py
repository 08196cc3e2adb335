"""
Namespace lifecycle on top of the reconciler.
"""
from __future__ import annotations

import structlog

from kubeconverge.exceptions import ProtectedResourceError
from kubeconverge.schemas.kubernetes import ResourceRef
from kubeconverge.services.k8s.manifests import DEFAULT_NAMESPACE, namespace_manifest
from kubeconverge.services.k8s.reconciler import ApplyOutcome, ResourceReconciler

logger = structlog.get_logger(__name__)


def _guard(name: str, action: str) -> None:
    if name.lower() == DEFAULT_NAMESPACE:
        raise ProtectedResourceError(
            f"cannot {action} default name space",
            details={"namespace": name},
        )


def create_namespace(reconciler: ResourceReconciler, name: str) -> ApplyOutcome | None:
    """Apply a labelled Namespace manifest. Returns ``None`` for an empty name."""
    _guard(name, "create")
    if not name:
        return None
    logger.info("namespace.create", namespace=name)
    return reconciler.apply(namespace_manifest(name), name)


def delete_namespace(reconciler: ResourceReconciler, name: str) -> ResourceRef | None:
    """Delete the Namespace (foreground cascade). Returns ``None`` for an empty name."""
    _guard(name, "delete")
    if not name:
        return None
    logger.info("namespace.delete", namespace=name)
    return reconciler.delete(namespace_manifest(name), name)
