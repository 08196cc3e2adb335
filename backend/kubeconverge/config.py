from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


ConnectionMode = Literal["kubeconfig", "token"]


class ClusterSettings(BaseModel):
    """Connection and reconcile behavior for one cluster.

    Passed explicitly to the cluster handle and the reconciler; nothing in the
    core reads the environment on its own.
    """

    model_config = ConfigDict(frozen=True)

    connection_mode: ConnectionMode = "kubeconfig"
    context_name: str | None = None
    config_path: str | None = None
    host: str | None = None
    bearer_token: str | None = Field(default=None, repr=False)
    insecure_skip_verify: bool = False
    dry_run: bool = False
    verbose: bool = False
    field_manager: str = "package-manager"
    request_timeout_seconds: float | None = 30.0
    discovery_cache_ttl_seconds: int = 600

    def resolved_config_path(self) -> str:
        """Kubeconfig location: ~/.kube/config when unset, <dir>/config for a directory path."""
        if not self.config_path:
            return os.path.join(os.path.expanduser("~"), ".kube", "config")
        if self.config_path.endswith("/"):
            return os.path.join(self.config_path, "config")
        return self.config_path


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=(".env",), env_file_encoding="utf-8", extra="ignore")

    app_env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"
    log_json: bool = False
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    # Cluster connection
    connection_mode: ConnectionMode = "kubeconfig"
    kube_context: str | None = None
    kube_config_path: str | None = None
    api_host: str | None = None
    bearer_token: str | None = Field(default=None, repr=False)
    insecure_skip_verify: bool = False
    # Reconcile behavior
    dry_run: bool = Field(default=False, description="Tag server-side apply as dry-run and never recreate")
    verbose: bool = Field(default=False, description="Log intermediate patch errors before the fallback")
    field_manager: str = Field(default="package-manager", description="Server-side apply field manager")
    request_timeout_seconds: float = Field(default=30.0, description="Deadline for every cluster API call")
    discovery_cache_ttl_seconds: int = 600
    # Optional Helm integration (server-side). Disabled by default.
    helm_enabled: bool = Field(default=False, description="Enable server-side Helm CLI integration")
    helm_binary: str = Field(default="helm", description="Path to Helm binary")
    helm_timeout_seconds: int = 600

    @computed_field
    @property
    def is_debug(self) -> bool:
        return self.app_env == "development"

    def cluster_settings(self) -> ClusterSettings:
        return ClusterSettings(
            connection_mode=self.connection_mode,
            context_name=self.kube_context,
            config_path=self.kube_config_path,
            host=self.api_host,
            bearer_token=self.bearer_token,
            insecure_skip_verify=self.insecure_skip_verify,
            dry_run=self.dry_run,
            verbose=self.verbose,
            field_manager=self.field_manager,
            request_timeout_seconds=self.request_timeout_seconds,
            discovery_cache_ttl_seconds=self.discovery_cache_ttl_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
