from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from kubernetes.client.rest import ApiException
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application error carrying an HTTP status and a stable error code."""

    def __init__(self, message: str, *, status_code: int = 400, code: str = "APP_ERROR", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}


class ClusterConfigError(AppException):
    """Connection settings cannot produce a cluster client."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=500, code="CLUSTER_CONFIG_ERROR", details=details)


class DecodeError(AppException):
    """The input is not a single well-formed resource document."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=400, code="DECODE_ERROR", details=details)


class DiscoveryError(AppException):
    """A group/version/kind could not be mapped to an API resource."""

    def __init__(self, api_version: str, kind: str, reason: str = "") -> None:
        message = f"unable to resolve Kind({kind}) ApiVersion({api_version})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            status_code=404,
            code="DISCOVERY_ERROR",
            details={"api_version": api_version, "kind": kind},
        )
        self.api_version = api_version
        self.kind = kind


class ProtectedResourceError(AppException):
    """Attempted mutation of a well-known resource that must never change."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=403, code="PROTECTED_RESOURCE", details=details)


class ApplyConflictError(AppException):
    """The server rejected the server-side apply patch."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=409, code="APPLY_CONFLICT", details=details)
        self.cause = cause


class RecreateFailedError(AppException):
    """The delete-then-create fallback could not create the object.

    ``create_error`` is what the message reports; ``patch_error`` keeps the
    rejected patch that started the fallback.
    """

    def __init__(
        self,
        message: str,
        *,
        create_error: BaseException,
        patch_error: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code=409, code="RECREATE_FAILED", details=details)
        self.create_error = create_error
        self.patch_error = patch_error


class FetchError(AppException):
    """Listing a resource kind failed while aggregating readiness."""

    def __init__(self, kind: str, namespace: str, cause: BaseException) -> None:
        super().__init__(
            f"failed to list {kind} in namespace {namespace}: {cause}",
            status_code=502,
            code="FETCH_ERROR",
            details={"kind": kind, "namespace": namespace},
        )
        self.kind = kind
        self.namespace = namespace
        self.cause = cause


class HelmError(AppException):
    """The helm binary could not be executed."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=502, code="HELM_ERROR", details=details)


def _build_error_payload(
    *,
    message: str,
    status_code: int,
    code: str = "APP_ERROR",
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the standardized error response body."""
    rid = request_id or str(uuid.uuid4())
    payload: Dict[str, Any] = {
        "success": False,
        "error": {
            "message": message,
            "code": code,
            **({"details": details} if details else {}),
        },
        "request_id": rid,
        "status_code": status_code,
    }
    return payload


def _error_response(
    request: Request,
    *,
    message: str,
    status_code: int,
    code: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    req_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    payload = _build_error_payload(
        message=message,
        status_code=status_code,
        code=code,
        details=details,
        request_id=req_id,
    )
    log = logger.error if status_code >= 500 else logger.warning
    log("%s: status=%s path=%s request_id=%s", code, status_code, request.url.path, req_id)
    return JSONResponse(status_code=status_code, content=payload, headers={"X-Request-ID": req_id})


def _api_exception_status(exc: ApiException) -> int:
    status = exc.status
    if isinstance(status, int) and 400 <= status < 600:
        return status
    return 502


def register_exception_handlers(app: FastAPI) -> None:
    """Install the global handlers that shape every error response."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        # detail may be a str or a dict
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error_response(request, message=message, status_code=exc.status_code, code="HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        return _error_response(
            request,
            message="Request validation failed",
            status_code=422,
            code="VALIDATION_ERROR",
            details={"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):  # type: ignore[override]
        return _error_response(
            request,
            message=exc.message,
            status_code=exc.status_code,
            code=exc.code,
            details=exc.details,
        )

    @app.exception_handler(ApiException)
    async def kubernetes_exception_handler(request: Request, exc: ApiException):  # type: ignore[override]
        return _error_response(
            request,
            message=exc.reason or "Kubernetes API request failed",
            status_code=_api_exception_status(exc),
            code="KUBERNETES_API_ERROR",
            details={"status": exc.status} if exc.status else None,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception("UnhandledException: path=%s", request.url.path)
        return _error_response(
            request,
            message="Internal server error",
            status_code=500,
            code="INTERNAL_SERVER_ERROR",
        )
