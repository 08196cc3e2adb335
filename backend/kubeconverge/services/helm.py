from __future__ import annotations

import json
import os
import subprocess
import tempfile
from collections.abc import Mapping
from typing import Any

import structlog
import yaml

from kubeconverge.config import Settings, get_settings
from kubeconverge.exceptions import HelmError
from kubeconverge.services.k8s.manifests import DEFAULT_NAMESPACE

logger = structlog.get_logger(__name__)


class HelmService:
    """Drives the ``helm`` binary against the configured cluster."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.cluster = self.settings.cluster_settings()

    def _bin(self) -> str:
        return self.settings.helm_binary

    def _cluster_args(self) -> list[str]:
        if self.cluster.connection_mode == "token":
            args = []
            if self.cluster.host:
                args += ["--kube-apiserver", self.cluster.host]
            if self.cluster.insecure_skip_verify:
                args.append("--kube-insecure-skip-tls-verify")
            return args
        args = ["--kubeconfig", self.cluster.resolved_config_path()]
        if self.cluster.context_name:
            args += ["--kube-context", self.cluster.context_name]
        return args

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        # token stays out of argv
        if self.cluster.connection_mode == "token" and self.cluster.bearer_token:
            env["HELM_KUBETOKEN"] = self.cluster.bearer_token
        return env

    def _run(self, *args: str, stdin: str | None = None) -> tuple[int, str, str]:
        cmd = [self._bin(), *args]
        logger.debug("helm.run", command=args[0] if args else "")
        try:
            proc = subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                env=self._env(),
                timeout=self.settings.helm_timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise HelmError(f"helm binary not found: {self._bin()}") from exc
        except subprocess.TimeoutExpired as exc:
            raise HelmError(f"helm {args[0]} timed out after {self.settings.helm_timeout_seconds}s") from exc
        return proc.returncode, proc.stdout or "", proc.stderr or ""

    def _release(
        self,
        action: str,
        release: str,
        chart: str,
        namespace: str | None,
        values: Mapping[str, Any] | None,
        version: str | None,
    ) -> tuple[bool, str | None]:
        namespace = namespace or DEFAULT_NAMESPACE
        args = [action, release, chart, "-n", namespace, *self._cluster_args()]
        if version:
            args += ["--version", version]
        if self.cluster.dry_run:
            args.append("--dry-run")
        path = None
        try:
            if values:
                fd, path = tempfile.mkstemp(prefix="kubeconverge-helm-", suffix=".yaml")
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(dict(values), fh, default_flow_style=False)
                args += ["-f", path]
            code, out, err = self._run(*args)
        finally:
            if path and os.path.exists(path):
                os.remove(path)
        if code != 0:
            logger.warning(f"helm.{action}_error", release=release, namespace=namespace, stderr=err)
            return False, err or out
        logger.info(f"helm.{action}", release=release, chart=chart, namespace=namespace)
        return True, None

    def install(
        self,
        release: str,
        chart: str,
        namespace: str | None = None,
        values: Mapping[str, Any] | None = None,
        version: str | None = None,
    ) -> tuple[bool, str | None]:
        return self._release("install", release, chart, namespace, values, version)

    def upgrade(
        self,
        release: str,
        chart: str,
        namespace: str | None = None,
        values: Mapping[str, Any] | None = None,
        version: str | None = None,
    ) -> tuple[bool, str | None]:
        return self._release("upgrade", release, chart, namespace, values, version)

    def uninstall(self, release: str, namespace: str | None = None) -> tuple[bool, str | None]:
        namespace = namespace or DEFAULT_NAMESPACE
        args = ["uninstall", release, "-n", namespace, *self._cluster_args()]
        if self.cluster.dry_run:
            args.append("--dry-run")
        code, out, err = self._run(*args)
        if code != 0:
            logger.warning("helm.uninstall_error", release=release, namespace=namespace, stderr=err)
            return False, err or out
        logger.info("helm.uninstall", release=release, namespace=namespace)
        return True, None

    def list_repos(self) -> list[dict[str, Any]]:
        code, out, err = self._run("repo", "list", "-o", "json")
        if code != 0:
            # helm exits non-zero when no repositories are configured
            logger.debug("helm.repo_list_empty", stderr=err)
            return []
        try:
            data = json.loads(out or "[]")
        except json.JSONDecodeError:
            logger.warning("helm.repo_list_unparseable")
            return []
        return data if isinstance(data, list) else []

    def repo_add(self, name: str, url: str, username: str | None = None, password: str | None = None) -> tuple[bool, str | None]:
        if any(r.get("name") == name for r in self.list_repos()):
            return False, f"repository name ({name}) already exists"
        args = ["repo", "add", name, url]
        if username:
            args += ["--username", username]
        if password:
            args.append("--password-stdin")
        code, out, err = self._run(*args, stdin=password or None)
        if code != 0:
            logger.warning("helm.repo_add_error", name=name, url=url, stderr=err)
            return False, err or out
        logger.info("helm.repo_add", name=name, url=url)
        return True, None

    def repo_update(self) -> tuple[bool, str | None]:
        if not self.list_repos():
            return False, "no repositories found. You must add one before updating"
        code, out, err = self._run("repo", "update")
        if code != 0:
            logger.warning("helm.repo_update_error", stderr=err)
            return False, err or out
        logger.info("helm.repo_update")
        return True, None

    def list_releases(self, namespace: str | None = None) -> list[dict[str, Any]]:
        args = ["list", "-o", "json", *self._cluster_args()]
        if namespace:
            args += ["-n", namespace]
        code, out, err = self._run(*args)
        if code != 0:
            logger.warning("helm.list_releases_error", stderr=err)
            return []
        try:
            data = json.loads(out or "[]")
        except json.JSONDecodeError:
            return []
        return data if isinstance(data, list) else []
