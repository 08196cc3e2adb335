from functools import lru_cache

from fastapi import Depends, HTTPException

from kubeconverge.config import Settings, get_settings
from kubeconverge.services.helm import HelmService
from kubeconverge.services.k8s import ClusterHandle, ReadinessAggregator, ResourceReconciler


@lru_cache(maxsize=1)
def get_cluster() -> ClusterHandle:
    return ClusterHandle(get_settings().cluster_settings())


def get_reconciler(cluster: ClusterHandle = Depends(get_cluster)) -> ResourceReconciler:
    return ResourceReconciler(cluster)


def get_readiness_aggregator(cluster: ClusterHandle = Depends(get_cluster)) -> ReadinessAggregator:
    # report lines go into JSON, keep them free of ANSI codes
    return ReadinessAggregator(cluster, colors=False)


def get_helm_service(settings: Settings = Depends(get_settings)) -> HelmService:
    if not settings.helm_enabled:
        raise HTTPException(status_code=404, detail="Helm integration disabled")
    return HelmService(settings)
