import json
import os
import subprocess
from types import SimpleNamespace

import pytest
import yaml

from kubeconverge.config import Settings
from kubeconverge.exceptions import HelmError
from kubeconverge.services.helm import HelmService


class Recorder:
    """Stands in for ``subprocess.run``; answers from a queue of (code, stdout, stderr)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, cmd, input=None, **kwargs):
        values_file = None
        if "-f" in cmd:
            path = cmd[cmd.index("-f") + 1]
            with open(path, encoding="utf-8") as fh:
                values_file = yaml.safe_load(fh)
        self.calls.append(SimpleNamespace(cmd=cmd, input=input, kwargs=kwargs, values=values_file))
        code, out, err = self.responses.pop(0) if self.responses else (0, "", "")
        return subprocess.CompletedProcess(cmd, code, out, err)


@pytest.fixture
def settings():
    return Settings(helm_enabled=True, helm_binary="helm", kube_config_path="/etc/kube/", kube_context="dev")


def _service(monkeypatch, settings, *responses):
    recorder = Recorder(*responses)
    monkeypatch.setattr("kubeconverge.services.helm.subprocess.run", recorder)
    return HelmService(settings), recorder


class TestReleases:
    def test_install_with_values(self, monkeypatch, settings):
        svc, rec = _service(monkeypatch, settings)
        ok, msg = svc.install("web", "bitnami/nginx", "shop", values={"replicaCount": 2}, version="15.0.0")
        assert (ok, msg) == (True, None)
        cmd = rec.calls[0].cmd
        assert cmd[:6] == ["helm", "install", "web", "bitnami/nginx", "-n", "shop"]
        assert cmd[cmd.index("--kubeconfig") + 1] == "/etc/kube/config"
        assert cmd[cmd.index("--kube-context") + 1] == "dev"
        assert cmd[cmd.index("--version") + 1] == "15.0.0"
        assert rec.calls[0].values == {"replicaCount": 2}
        assert not os.path.exists(cmd[cmd.index("-f") + 1])

    def test_namespace_defaults_to_default(self, monkeypatch, settings):
        svc, rec = _service(monkeypatch, settings)
        svc.upgrade("web", "./chart")
        assert rec.calls[0].cmd[1:6] == ["upgrade", "web", "./chart", "-n", "default"]
        assert "-f" not in rec.calls[0].cmd

    def test_failure_returns_stderr(self, monkeypatch, settings):
        svc, _ = _service(monkeypatch, settings, (1, "", "Error: release exists"))
        assert svc.install("web", "./chart", "shop") == (False, "Error: release exists")

    def test_dry_run_flag(self, monkeypatch):
        svc, rec = _service(monkeypatch, Settings(helm_enabled=True, dry_run=True))
        svc.install("web", "./chart", "shop")
        svc.uninstall("web", "shop")
        assert "--dry-run" in rec.calls[0].cmd
        assert "--dry-run" in rec.calls[1].cmd

    def test_uninstall(self, monkeypatch, settings):
        svc, rec = _service(monkeypatch, settings)
        assert svc.uninstall("web", "") == (True, None)
        assert rec.calls[0].cmd[1:5] == ["uninstall", "web", "-n", "default"]

    def test_kubeconfig_mode_sets_no_token(self, monkeypatch, settings):
        monkeypatch.delenv("HELM_KUBETOKEN", raising=False)
        svc, rec = _service(monkeypatch, settings)
        svc.uninstall("web", "shop")
        assert "HELM_KUBETOKEN" not in rec.calls[0].kwargs["env"]

    def test_token_mode_flags(self, monkeypatch):
        settings = Settings(connection_mode="token", api_host="https://k8s:6443", bearer_token="abc", insecure_skip_verify=True)
        svc, rec = _service(monkeypatch, settings)
        svc.uninstall("web", "shop")
        cmd = rec.calls[0].cmd
        assert cmd[cmd.index("--kube-apiserver") + 1] == "https://k8s:6443"
        assert "abc" not in cmd
        assert "--kube-token" not in cmd
        assert rec.calls[0].kwargs["env"]["HELM_KUBETOKEN"] == "abc"
        assert "--kube-insecure-skip-tls-verify" in cmd
        assert "--kubeconfig" not in cmd


class TestRepositories:
    def test_repo_add(self, monkeypatch, settings):
        svc, rec = _service(monkeypatch, settings, (1, "", "Error: no repositories to show"), (0, "added", ""))
        assert svc.repo_add("bitnami", "https://charts.bitnami.com", username="u", password="p") == (True, None)
        add = rec.calls[1]
        assert add.cmd == ["helm", "repo", "add", "bitnami", "https://charts.bitnami.com", "--username", "u", "--password-stdin"]
        assert add.input == "p"

    def test_repo_add_rejects_existing_name(self, monkeypatch, settings):
        listing = json.dumps([{"name": "bitnami", "url": "https://charts.bitnami.com"}])
        svc, rec = _service(monkeypatch, settings, (0, listing, ""))
        assert svc.repo_add("bitnami", "https://other") == (False, "repository name (bitnami) already exists")
        assert len(rec.calls) == 1

    def test_repo_update_without_repositories(self, monkeypatch, settings):
        svc, rec = _service(monkeypatch, settings, (1, "", "Error: no repositories to show"))
        ok, msg = svc.repo_update()
        assert ok is False
        assert msg.startswith("no repositories found")
        assert len(rec.calls) == 1

    def test_repo_update(self, monkeypatch, settings):
        listing = json.dumps([{"name": "bitnami", "url": "https://charts.bitnami.com"}])
        svc, rec = _service(monkeypatch, settings, (0, listing, ""), (0, "Update Complete", ""))
        assert svc.repo_update() == (True, None)
        assert rec.calls[1].cmd == ["helm", "repo", "update"]


class TestExecution:
    def test_missing_binary(self, monkeypatch, settings):
        def boom(*args, **kwargs):
            raise FileNotFoundError("helm")

        monkeypatch.setattr("kubeconverge.services.helm.subprocess.run", boom)
        with pytest.raises(HelmError, match="not found"):
            HelmService(settings).uninstall("web", "shop")

    def test_timeout(self, monkeypatch, settings):
        def slow(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr("kubeconverge.services.helm.subprocess.run", slow)
        with pytest.raises(HelmError, match="timed out"):
            HelmService(settings).uninstall("web", "shop")
