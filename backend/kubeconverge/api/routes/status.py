from fastapi import APIRouter, Depends

from kubeconverge.dependencies import get_readiness_aggregator
from kubeconverge.schemas.kubernetes import CheckResult, ReadinessPayload
from kubeconverge.services.k8s import ReadinessAggregator

router = APIRouter(prefix="/status", tags=["status"])


@router.post("/check", response_model=CheckResult, summary="Aggregate readiness by name pattern")
def check_status(payload: ReadinessPayload, aggregator: ReadinessAggregator = Depends(get_readiness_aggregator)) -> CheckResult:
    all_ready, report = aggregator.check(payload.namespace, payload.checks, payload.want_none_running)
    return CheckResult(all_ready=all_ready, report=report)
