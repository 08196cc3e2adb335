"""
Apply/delete engine.

``apply`` is a three-terminal state machine:

    patch ok                          -> applied
    patch failed, dry-run             -> failed (patch error)
    patch failed, delete + create ok  -> recreated
    patch failed, create failed       -> failed (create error, patch error attached)

The delete-then-create fallback is not safe against a concurrent apply of the
same object.
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from kubernetes.client.rest import ApiException

from kubeconverge.exceptions import AppException, ApplyConflictError, RecreateFailedError
from kubeconverge.schemas.kubernetes import ResourceRef
from kubeconverge.services.k8s.discovery import ResourceMapping
from kubeconverge.services.k8s.manifests import decode_manifest, effective_namespace

logger = structlog.get_logger(__name__)

FOREGROUND = "Foreground"


class ApplyStatus(str, enum.Enum):
    APPLIED = "applied"
    RECREATED = "recreated"
    FAILED = "failed"


@dataclass(frozen=True)
class ApplyOutcome:
    status: ApplyStatus
    ref: ResourceRef
    error: AppException | None = None

    @property
    def ok(self) -> bool:
        return self.status is not ApplyStatus.FAILED


def _api_error_text(exc: ApiException) -> str:
    reason = exc.reason or "error"
    if exc.status:
        return f"{exc.status} {reason}"
    return reason


class ResourceReconciler:
    """Converges one resource document at a time toward its declared state."""

    def __init__(
        self,
        cluster: Any,
        *,
        dry_run: bool | None = None,
        verbose: bool | None = None,
        field_manager: str | None = None,
    ) -> None:
        self.cluster = cluster
        settings = cluster.settings
        self.dry_run = settings.dry_run if dry_run is None else dry_run
        self.verbose = settings.verbose if verbose is None else verbose
        self.field_manager = field_manager or settings.field_manager

    def resolve(
        self, document: str | Mapping[str, Any], target_namespace: str | None = None
    ) -> tuple[dict[str, Any], ResourceRef, ResourceMapping]:
        """Decode ``document`` and resolve its canonical coordinates.

        The returned object carries the effective namespace in
        ``metadata.namespace`` when the resource is namespaced.
        """
        obj = decode_manifest(document)
        namespace = effective_namespace(obj, target_namespace)
        mapping = self.cluster.mapper.resolve(obj["apiVersion"], obj["kind"])
        if mapping.namespaced:
            obj["metadata"]["namespace"] = namespace
            ref_namespace: str | None = namespace
        else:
            ref_namespace = None
        ref = ResourceRef(
            api_group=mapping.group,
            version=mapping.version,
            kind=mapping.kind,
            resource=mapping.resource,
            namespace=ref_namespace,
            name=obj["metadata"]["name"],
        )
        return obj, ref, mapping

    def apply(self, document: str | Mapping[str, Any], target_namespace: str | None = None) -> ApplyOutcome:
        obj, ref, mapping = self.resolve(document, target_namespace)
        dyn = self.cluster.dynamic()
        timeout = self.cluster.request_timeout
        log = logger.bind(kind=ref.kind, namespace=ref.namespace, name=ref.name, dry_run=self.dry_run)

        log.info("reconcile.apply_patch")
        try:
            dyn.server_side_apply(
                mapping.handle,
                body=obj,
                name=ref.name,
                namespace=ref.namespace,
                field_manager=self.field_manager,
                dry_run="All" if self.dry_run else None,
                _request_timeout=timeout,
            )
        except ApiException as patch_exc:
            patch_text = _api_error_text(patch_exc)
            if self.verbose:
                log.info("reconcile.apply_patch_failed", error=patch_text)
            else:
                log.debug("reconcile.apply_patch_failed", error=patch_text)
            if self.dry_run:
                return ApplyOutcome(
                    ApplyStatus.FAILED,
                    ref,
                    ApplyConflictError(
                        f"server-side apply of {ref} rejected: {patch_text}",
                        cause=patch_exc,
                        details={"status": patch_exc.status},
                    ),
                )
            return self._recreate(dyn, mapping, obj, ref, patch_exc, log)

        log.info("reconcile.applied")
        return ApplyOutcome(ApplyStatus.APPLIED, ref)

    def _recreate(self, dyn, mapping, obj, ref, patch_exc, log) -> ApplyOutcome:
        timeout = self.cluster.request_timeout
        log.info("reconcile.fallback_delete")
        try:
            dyn.delete(
                mapping.handle,
                name=ref.name,
                namespace=ref.namespace,
                propagation_policy=FOREGROUND,
                _request_timeout=timeout,
            )
        except ApiException as delete_exc:
            # best effort, create decides the outcome
            log.info("reconcile.fallback_delete_failed", error=_api_error_text(delete_exc))

        log.info("reconcile.fallback_create")
        try:
            dyn.create(mapping.handle, body=obj, namespace=ref.namespace, _request_timeout=timeout)
        except ApiException as create_exc:
            create_text = _api_error_text(create_exc)
            log.warning("reconcile.fallback_create_failed", error=create_text)
            return ApplyOutcome(
                ApplyStatus.FAILED,
                ref,
                RecreateFailedError(
                    f"recreate of {ref} failed: {create_text}",
                    create_error=create_exc,
                    patch_error=patch_exc,
                    details={"status": create_exc.status, "patch_error": _api_error_text(patch_exc)},
                ),
            )

        log.info("reconcile.recreated")
        return ApplyOutcome(ApplyStatus.RECREATED, ref)

    def delete(self, document: str | Mapping[str, Any], target_namespace: str | None = None) -> ResourceRef:
        """Foreground-cascade delete by name; API errors propagate unchanged.

        In dry-run mode the request is sent with ``dryRun=All``.
        """
        _, ref, mapping = self.resolve(document, target_namespace)
        logger.info("reconcile.delete", kind=ref.kind, namespace=ref.namespace, name=ref.name, dry_run=self.dry_run)
        self.cluster.dynamic().delete(
            mapping.handle,
            name=ref.name,
            namespace=ref.namespace,
            propagation_policy=FOREGROUND,
            dry_run="All" if self.dry_run else None,
            _request_timeout=self.cluster.request_timeout,
        )
        return ref
