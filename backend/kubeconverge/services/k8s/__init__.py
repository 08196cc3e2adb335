"""
Kubernetes operations: cluster handle, discovery, reconcile and readiness.
"""
from .cluster import ClusterHandle, build_api_client
from .discovery import ResourceMapper, ResourceMapping
from .manifests import decode_manifest, split_manifests
from .namespace_operations import create_namespace, delete_namespace
from .readiness import CheckExpression, CheckKind, ReadinessAggregator
from .reconciler import ApplyOutcome, ApplyStatus, ResourceReconciler
from .service_operations import get_service_ip

__all__ = [
    "ClusterHandle",
    "build_api_client",
    "ResourceMapper",
    "ResourceMapping",
    "decode_manifest",
    "split_manifests",
    "create_namespace",
    "delete_namespace",
    "CheckExpression",
    "CheckKind",
    "ReadinessAggregator",
    "ApplyOutcome",
    "ApplyStatus",
    "ResourceReconciler",
    "get_service_ip",
]
