"""
Runtime configuration and local state files
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from shoulders_platform.exceptions import KubeconfigError, ValidationError

logger = logging.getLogger(__name__)

KIND_CONTEXT_PREFIX = "kind-"
REPO_ROOT_SEARCH_DEPTH = 6


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %d", name, value, default)
        return default


def resolve_kubeconfig_path() -> Path:
    """First entry of $KUBECONFIG, else ~/.kube/config"""
    env_path = os.getenv("KUBECONFIG", "")
    if env_path.strip():
        return Path(env_path.split(os.pathsep)[0]).expanduser()
    return Path.home() / ".kube" / "config"


def resolve_preferences_path() -> Path:
    override = os.getenv("SHOULDERS_CONFIG", "")
    if override.strip():
        return Path(override).expanduser()
    return Path.home() / ".shoulders" / "config.yaml"


def resolve_repo_root(start_dir: Path | None = None) -> Path:
    """Locate the platform repository holding the XRD definitions and examples.

    ``SHOULDERS_REPO_ROOT`` wins when it exists. Otherwise walk up from
    ``start_dir`` looking for a directory with both ``ROADMAP.md`` and
    ``shoulders-cli/``, falling back to the working directory.
    """
    override = os.getenv("SHOULDERS_REPO_ROOT", "")
    if override.strip() and Path(override).exists():
        return Path(override)

    directory = (start_dir or Path(__file__).resolve().parent).resolve()
    for _ in range(REPO_ROOT_SEARCH_DEPTH):
        if (directory / "ROADMAP.md").exists() and (directory / "shoulders-cli").exists():
            return directory
        if directory.parent == directory:
            break
        directory = directory.parent
    return Path.cwd()


@dataclass
class Settings:
    """Settings read from the environment once per process"""

    repo_root: Path = field(default_factory=Path.cwd)
    observability_namespace: str = "observability"
    loki_service: str = "loki"
    tempo_service: str = "tempo"
    loki_remote_port: int = 3100
    tempo_remote_port: int = 3100
    port_forward_timeout_ms: int = 15000
    kubectl_bin: str = "kubectl"
    kubeconfig_path: Path = field(default_factory=resolve_kubeconfig_path)
    preferences_path: Path = field(default_factory=resolve_preferences_path)
    mock_mode: bool = False
    port: int = 8787
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            repo_root=resolve_repo_root(),
            observability_namespace=os.getenv("SHOULDERS_OBSERVABILITY_NAMESPACE")
            or "observability",
            loki_service=os.getenv("SHOULDERS_LOKI_SERVICE") or "loki",
            tempo_service=os.getenv("SHOULDERS_TEMPO_SERVICE") or "tempo",
            loki_remote_port=_env_int("SHOULDERS_LOKI_REMOTE_PORT", 3100),
            tempo_remote_port=_env_int("SHOULDERS_TEMPO_REMOTE_PORT", 3100),
            port_forward_timeout_ms=_env_int("SHOULDERS_MCP_PORT_FORWARD_TIMEOUT_MS", 15000),
            kubectl_bin=os.getenv("KUBECTL_BIN") or "kubectl",
            kubeconfig_path=resolve_kubeconfig_path(),
            preferences_path=resolve_preferences_path(),
            mock_mode=os.getenv("SHOULDERS_MOCK") == "1",
            port=_env_int("PORT", 8787),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


class WorkspacePreferences:
    """The ``current_workspace`` preference stored in a small YAML document"""

    KEY = "current_workspace"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, Any]:
        """Read the document; a missing or unparsable file reads as empty"""
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            logger.warning("Ignoring unparsable preferences file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o755)
        self.path.write_text(yaml.safe_dump(data, default_flow_style=False), encoding="utf-8")

    def get_current(self) -> str | None:
        value = self.read().get(self.KEY)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def set_current(self, name: str) -> None:
        data = self.read()
        data[self.KEY] = name
        self.write(data)
        logger.info("Current workspace set to %s", name)


class KubeconfigFile:
    """Read and rewrite the contexts section of a kubeconfig file"""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            raise KubeconfigError(f"kubeconfig not found at {self.path}", "reading", "kubeconfig")
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise KubeconfigError(
                f"kubeconfig at {self.path} is not valid YAML: {e}", "reading", "kubeconfig"
            ) from e
        return data if isinstance(data, dict) else {}

    def contexts(self) -> list[str]:
        return [
            str(entry["name"])
            for entry in self.load().get("contexts") or []
            if isinstance(entry, dict) and entry.get("name")
        ]

    def current_context(self) -> str | None:
        value = self.load().get("current-context")
        return str(value) if value else None

    def cluster_for(self, context: str | None) -> dict[str, Any] | None:
        """Cluster entry ({name, server}) referenced by a context"""
        if not context:
            return None
        data = self.load()
        context_entry = next(
            (c for c in data.get("contexts") or [] if isinstance(c, dict) and c.get("name") == context),
            None,
        )
        if not context_entry:
            return None
        cluster_name = (context_entry.get("context") or {}).get("cluster")
        for cluster in data.get("clusters") or []:
            if isinstance(cluster, dict) and cluster.get("name") == cluster_name:
                return {
                    "name": cluster_name,
                    "server": (cluster.get("cluster") or {}).get("server"),
                }
        return None

    def list_kind_clusters(self) -> list[str]:
        return sorted(
            name[len(KIND_CONTEXT_PREFIX) :]
            for name in self.contexts()
            if name.startswith(KIND_CONTEXT_PREFIX)
        )

    def set_current_context(self, context: str) -> None:
        """Rewrite current-context after checking the context is defined

        Raises:
            KubeconfigError: If the file is missing or unreadable
            ValidationError: If the context is not defined in the file
        """
        data = self.load()
        names = [c.get("name") for c in data.get("contexts") or [] if isinstance(c, dict)]
        if context not in names:
            raise ValidationError(f"context {context} not found in kubeconfig")
        data["current-context"] = context
        self.path.write_text(yaml.safe_dump(data, default_flow_style=False), encoding="utf-8")
        logger.info("Switched kubeconfig %s to context %s", self.path, context)
