from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResourceRef(BaseModel):
    """Canonical coordinates of one object, derived per call."""

    model_config = ConfigDict(frozen=True)

    api_group: str = ""
    version: str
    kind: str
    resource: str
    namespace: str | None = None
    name: str

    @property
    def api_version(self) -> str:
        return f"{self.api_group}/{self.version}" if self.api_group else self.version

    @property
    def cluster_scoped(self) -> bool:
        return self.namespace is None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


class ReadinessRecord(BaseModel):
    kind: str
    name: str
    current: int | None = None
    desired: int | None = None
    ready: bool
    line: str


class CheckResult(BaseModel):
    all_ready: bool
    report: list[str]


class ServiceDetails(BaseModel):
    service_name: str
    service_type: Literal["LoadBalancer", "ClusterIP"]
    ip: str
    port: int | None = None


class OperationResult(BaseModel):
    ok: bool
    message: str | None = None


class ApplyResult(BaseModel):
    status: Literal["applied", "recreated", "failed"]
    kind: str | None = None
    name: str | None = None
    namespace: str | None = None
    message: str | None = None
    code: str | None = None


class ManifestPayload(BaseModel):
    manifest: str = Field(..., description="One or more YAML documents separated by ---")
    namespace: str = ""


class ReadinessPayload(BaseModel):
    namespace: str
    checks: list[str] = Field(default_factory=list)
    want_none_running: bool = False


class NamespaceCreate(BaseModel):
    name: str


class HelmReleasePayload(BaseModel):
    release: str
    chart: str
    namespace: str = "default"
    values: dict[str, Any] | None = None
    version: str | None = None


class HelmRepoPayload(BaseModel):
    name: str
    url: str
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
