from fastapi import APIRouter, Depends, Query

from kubeconverge.dependencies import get_cluster
from kubeconverge.schemas.kubernetes import ServiceDetails
from kubeconverge.services.k8s import ClusterHandle, get_service_ip

router = APIRouter(prefix="/services", tags=["services"])


@router.get("/{namespace}/ips", response_model=list[ServiceDetails], summary="Service addresses by name pattern")
def service_ips(
    namespace: str,
    pattern: str = Query("", description="Regular expression matched against service names"),
    cluster: ClusterHandle = Depends(get_cluster),
) -> list[ServiceDetails]:
    return get_service_ip(cluster, namespace, pattern)
