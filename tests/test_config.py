"""
Tests for settings, workspace preferences and kubeconfig handling
"""

import os
from pathlib import Path

import pytest
import yaml

from shoulders_platform.config import (
    KubeconfigFile,
    Settings,
    WorkspacePreferences,
    resolve_kubeconfig_path,
    resolve_preferences_path,
    resolve_repo_root,
)
from shoulders_platform.exceptions import KubeconfigError, ValidationError


class TestSettings:
    """Test environment-driven settings"""

    def test_defaults(self, monkeypatch):
        for name in (
            "SHOULDERS_OBSERVABILITY_NAMESPACE",
            "SHOULDERS_LOKI_SERVICE",
            "SHOULDERS_TEMPO_REMOTE_PORT",
            "SHOULDERS_MCP_PORT_FORWARD_TIMEOUT_MS",
            "SHOULDERS_MOCK",
            "KUBECTL_BIN",
            "PORT",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.observability_namespace == "observability"
        assert settings.loki_service == "loki"
        assert settings.tempo_remote_port == 3100
        assert settings.port_forward_timeout_ms == 15000
        assert settings.kubectl_bin == "kubectl"
        assert settings.mock_mode is False
        assert settings.port == 8787

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("SHOULDERS_OBSERVABILITY_NAMESPACE", "monitoring")
        monkeypatch.setenv("SHOULDERS_TEMPO_REMOTE_PORT", "3200")
        monkeypatch.setenv("SHOULDERS_MCP_PORT_FORWARD_TIMEOUT_MS", "5000")
        monkeypatch.setenv("SHOULDERS_MOCK", "1")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.observability_namespace == "monitoring"
        assert settings.tempo_remote_port == 3200
        assert settings.port_forward_timeout_ms == 5000
        assert settings.mock_mode is True
        assert settings.log_level == "DEBUG"

    def test_non_numeric_port_ignored(self, monkeypatch):
        monkeypatch.setenv("SHOULDERS_LOKI_REMOTE_PORT", "abc")

        assert Settings.from_env().loki_remote_port == 3100


class TestPathResolution:
    """Test kubeconfig, preferences and repository root lookup"""

    def test_kubeconfig_first_entry(self, monkeypatch, tmp_path):
        first = tmp_path / "a"
        monkeypatch.setenv("KUBECONFIG", f"{first}{os.pathsep}{tmp_path / 'b'}")

        assert resolve_kubeconfig_path() == first

    def test_kubeconfig_default(self, monkeypatch):
        monkeypatch.delenv("KUBECONFIG", raising=False)

        assert resolve_kubeconfig_path() == Path.home() / ".kube" / "config"

    def test_preferences_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SHOULDERS_CONFIG", str(tmp_path / "prefs.yaml"))

        assert resolve_preferences_path() == tmp_path / "prefs.yaml"

    def test_repo_root_found_by_markers(self, monkeypatch, tmp_path):
        monkeypatch.delenv("SHOULDERS_REPO_ROOT", raising=False)
        (tmp_path / "ROADMAP.md").write_text("# Roadmap")
        (tmp_path / "shoulders-cli").mkdir()
        nested = tmp_path / "tools" / "mcp" / "src"
        nested.mkdir(parents=True)

        assert resolve_repo_root(nested) == tmp_path.resolve()

    def test_repo_root_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SHOULDERS_REPO_ROOT", str(tmp_path))

        assert resolve_repo_root() == tmp_path


class TestWorkspacePreferences:
    """Test the current workspace preference file"""

    def test_missing_file(self, tmp_path):
        prefs = WorkspacePreferences(tmp_path / "missing.yaml")

        assert prefs.read() == {}
        assert prefs.get_current() is None

    def test_set_preserves_other_keys(self, tmp_path):
        path = tmp_path / "shoulders" / "config.yaml"
        path.parent.mkdir()
        path.write_text(yaml.safe_dump({"theme": "dark"}))
        prefs = WorkspacePreferences(path)

        prefs.set_current("team-a")

        assert prefs.get_current() == "team-a"
        assert yaml.safe_load(path.read_text()) == {"theme": "dark", "current_workspace": "team-a"}

    def test_creates_parent_directory(self, tmp_path):
        prefs = WorkspacePreferences(tmp_path / "new" / "config.yaml")

        prefs.set_current("team-b")

        assert prefs.get_current() == "team-b"

    def test_unparsable_file_reads_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("current_workspace: [unclosed")

        assert WorkspacePreferences(path).get_current() is None


class TestKubeconfigFile:
    """Test kubeconfig reads and context switching"""

    def test_contexts(self, kubeconfig_file):
        kubeconfig = KubeconfigFile(kubeconfig_file)

        assert kubeconfig.contexts() == ["kind-shoulders", "prod-cluster", "kind-dev"]
        assert kubeconfig.current_context() == "kind-shoulders"

    def test_list_kind_clusters(self, kubeconfig_file):
        assert KubeconfigFile(kubeconfig_file).list_kind_clusters() == ["dev", "shoulders"]

    def test_cluster_for(self, kubeconfig_file):
        kubeconfig = KubeconfigFile(kubeconfig_file)

        assert kubeconfig.cluster_for("prod-cluster") == {
            "name": "prod",
            "server": "https://prod.example.com",
        }
        assert kubeconfig.cluster_for("missing") is None
        assert kubeconfig.cluster_for(None) is None

    def test_set_current_context(self, kubeconfig_file):
        kubeconfig = KubeconfigFile(kubeconfig_file)

        kubeconfig.set_current_context("kind-dev")

        assert KubeconfigFile(kubeconfig_file).current_context() == "kind-dev"

    def test_set_unknown_context(self, kubeconfig_file):
        with pytest.raises(ValidationError, match="context kind-other not found in kubeconfig"):
            KubeconfigFile(kubeconfig_file).set_current_context("kind-other")

        assert KubeconfigFile(kubeconfig_file).current_context() == "kind-shoulders"

    def test_missing_file(self, tmp_path):
        with pytest.raises(KubeconfigError, match="kubeconfig not found"):
            KubeconfigFile(tmp_path / "nope").contexts()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("contexts: [")

        with pytest.raises(KubeconfigError, match="not valid YAML"):
            KubeconfigFile(path).load()
