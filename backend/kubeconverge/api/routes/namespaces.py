from fastapi import APIRouter, Depends, HTTPException

from kubeconverge.dependencies import get_reconciler
from kubeconverge.schemas.kubernetes import NamespaceCreate, OperationResult
from kubeconverge.services.k8s import ResourceReconciler, create_namespace, delete_namespace

router = APIRouter(prefix="/namespaces", tags=["namespaces"])


@router.post("/", response_model=OperationResult, summary="Create a namespace")
def create(payload: NamespaceCreate, reconciler: ResourceReconciler = Depends(get_reconciler)) -> OperationResult:
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="name is required")
    outcome = create_namespace(reconciler, payload.name.strip())
    if outcome is not None and outcome.error is not None:
        raise outcome.error
    return OperationResult(ok=True, message=outcome.status.value if outcome else None)


@router.delete("/{name}", response_model=OperationResult, summary="Delete a namespace")
def delete(name: str, reconciler: ResourceReconciler = Depends(get_reconciler)) -> OperationResult:
    delete_namespace(reconciler, name)
    return OperationResult(ok=True, message=None)
