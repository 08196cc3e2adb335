from __future__ import annotations

from fastapi import APIRouter, Depends

from kubeconverge.dependencies import get_helm_service
from kubeconverge.schemas.kubernetes import HelmReleasePayload, HelmRepoPayload, OperationResult
from kubeconverge.services.helm import HelmService

router = APIRouter(prefix="/helm", tags=["helm"])


@router.post("/install", response_model=OperationResult)
def install(payload: HelmReleasePayload, svc: HelmService = Depends(get_helm_service)) -> OperationResult:
    ok, msg = svc.install(
        release=payload.release,
        chart=payload.chart,
        namespace=payload.namespace,
        values=payload.values,
        version=payload.version,
    )
    return OperationResult(ok=ok, message=msg)


@router.post("/upgrade", response_model=OperationResult)
def upgrade(payload: HelmReleasePayload, svc: HelmService = Depends(get_helm_service)) -> OperationResult:
    ok, msg = svc.upgrade(
        release=payload.release,
        chart=payload.chart,
        namespace=payload.namespace,
        values=payload.values,
        version=payload.version,
    )
    return OperationResult(ok=ok, message=msg)


@router.delete("/uninstall/{namespace}/{release}", response_model=OperationResult)
def uninstall(namespace: str, release: str, svc: HelmService = Depends(get_helm_service)) -> OperationResult:
    ok, msg = svc.uninstall(release=release, namespace=namespace)
    return OperationResult(ok=ok, message=msg)


@router.post("/repos", response_model=OperationResult)
def repo_add(payload: HelmRepoPayload, svc: HelmService = Depends(get_helm_service)) -> OperationResult:
    ok, msg = svc.repo_add(payload.name, payload.url, username=payload.username, password=payload.password)
    return OperationResult(ok=ok, message=msg)


@router.post("/repos/update", response_model=OperationResult)
def repo_update(svc: HelmService = Depends(get_helm_service)) -> OperationResult:
    ok, msg = svc.repo_update()
    return OperationResult(ok=ok, message=msg)
