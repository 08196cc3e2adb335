from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from kubeconverge.dependencies import get_reconciler
from kubeconverge.schemas.kubernetes import ApplyResult, ManifestPayload, OperationResult
from kubeconverge.services.k8s import ApplyOutcome, ResourceReconciler, split_manifests

router = APIRouter(prefix="/manifests", tags=["manifests"])


def _documents(payload: ManifestPayload, reconciler: ResourceReconciler) -> list[dict[str, Any]]:
    """Decode and resolve every document; a bad one fails the request before any change."""
    docs = split_manifests(payload.manifest)
    if not docs:
        raise HTTPException(status_code=400, detail="manifest is empty")
    return [reconciler.resolve(doc, payload.namespace)[0] for doc in docs]


def _to_result(outcome: ApplyOutcome) -> ApplyResult:
    return ApplyResult(
        status=outcome.status.value,
        kind=outcome.ref.kind,
        name=outcome.ref.name,
        namespace=outcome.ref.namespace,
        message=outcome.error.message if outcome.error else None,
        code=outcome.error.code if outcome.error else None,
    )


@router.post("/apply", response_model=list[ApplyResult], summary="Server-side apply every document")
def apply_manifests(payload: ManifestPayload, reconciler: ResourceReconciler = Depends(get_reconciler)) -> list[ApplyResult]:
    return [_to_result(reconciler.apply(doc, payload.namespace)) for doc in _documents(payload, reconciler)]


@router.post("/delete", response_model=OperationResult, summary="Delete every document")
def delete_manifests(payload: ManifestPayload, reconciler: ResourceReconciler = Depends(get_reconciler)) -> OperationResult:
    refs = [reconciler.delete(doc, payload.namespace) for doc in _documents(payload, reconciler)]
    return OperationResult(ok=True, message=", ".join(str(r) for r in refs))
