"""Test configuration and fixtures."""

import copy
import json
from typing import Any

import pytest
import yaml
from fastapi.testclient import TestClient
from kubernetes.client.rest import ApiException

from shoulders_platform.config import Settings
from shoulders_platform.dashboard.main import create_app


def api_error(status: int, message: str | None = None) -> ApiException:
    """Build an ApiException the way the Kubernetes client raises it."""
    error = ApiException(status=status, reason={404: "Not Found", 409: "Conflict"}.get(status, "Error"))
    if message:
        error.body = json.dumps({"kind": "Status", "message": message, "code": status})
    return error


class FakeStore:
    """In-memory ResourceStore that enforces resourceVersion on replace."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str | None, str | None], dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self._version = 0

    def fail(self, operation: str, plural: str, error: Exception) -> None:
        self.failures[(operation, plural)] = error

    def _check(self, operation: str, ref: Any) -> None:
        self.calls.append((operation, ref))
        error = self.failures.get((operation, ref.plural))
        if error is not None:
            raise error

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def seed(self, ref: Any, body: dict[str, Any]) -> None:
        stored = copy.deepcopy(body)
        stored.setdefault("metadata", {})["resourceVersion"] = self._next_version()
        self.objects[(ref.plural, ref.namespace, ref.name)] = stored

    # Defined before list() so the annotation resolves to the builtin
    def mutations(self) -> list[str]:
        return [op for op, _ in self.calls if op in ("create", "replace", "delete")]

    def get(self, ref: Any) -> dict[str, Any]:
        self._check("get", ref)
        key = (ref.plural, ref.namespace, ref.name)
        if key not in self.objects:
            raise api_error(404)
        return copy.deepcopy(self.objects[key])

    def list(self, ref: Any) -> list[dict[str, Any]]:
        self._check("list", ref)
        return [
            copy.deepcopy(obj)
            for (plural, namespace, _), obj in self.objects.items()
            if plural == ref.plural and (ref.namespace is None or namespace == ref.namespace)
        ]

    def create(self, ref: Any, body: dict[str, Any]) -> dict[str, Any]:
        self._check("create", ref)
        key = (ref.plural, ref.namespace, ref.name)
        if key in self.objects:
            raise api_error(409, f"{ref.plural} \"{ref.name}\" already exists")
        self.seed(ref, body)
        return copy.deepcopy(self.objects[key])

    def replace(self, ref: Any, body: dict[str, Any]) -> dict[str, Any]:
        self._check("replace", ref)
        key = (ref.plural, ref.namespace, ref.name)
        existing = self.objects.get(key)
        if existing is None:
            raise api_error(404)
        sent = (body.get("metadata") or {}).get("resourceVersion")
        if sent != existing["metadata"]["resourceVersion"]:
            raise api_error(409, "the object has been modified")
        self.seed(ref, body)
        return copy.deepcopy(self.objects[key])

    def delete(self, ref: Any) -> dict[str, Any]:
        self._check("delete", ref)
        key = (ref.plural, ref.namespace, ref.name)
        if key not in self.objects:
            raise api_error(404)
        return self.objects.pop(key)


@pytest.fixture
def fake_store():
    """Empty in-memory resource store."""
    return FakeStore()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated to a temporary directory."""
    return Settings(
        repo_root=tmp_path,
        kubeconfig_path=tmp_path / "kube" / "config",
        preferences_path=tmp_path / "shoulders" / "config.yaml",
    )


@pytest.fixture
def kubeconfig_file(settings):
    """A kubeconfig with two kind clusters and one remote cluster."""
    data = {
        "apiVersion": "v1",
        "kind": "Config",
        "current-context": "kind-shoulders",
        "clusters": [
            {"name": "kind-shoulders", "cluster": {"server": "https://127.0.0.1:6443"}},
            {"name": "kind-dev", "cluster": {"server": "https://127.0.0.1:7443"}},
            {"name": "prod", "cluster": {"server": "https://prod.example.com"}},
        ],
        "contexts": [
            {"name": "kind-shoulders", "context": {"cluster": "kind-shoulders", "user": "kind"}},
            {"name": "prod-cluster", "context": {"cluster": "prod", "user": "admin"}},
            {"name": "kind-dev", "context": {"cluster": "kind-dev", "user": "kind"}},
        ],
        "users": [{"name": "kind", "user": {}}, {"name": "admin", "user": {}}],
    }
    settings.kubeconfig_path.parent.mkdir(parents=True, exist_ok=True)
    settings.kubeconfig_path.write_text(yaml.safe_dump(data))
    return settings.kubeconfig_path


@pytest.fixture
def client(settings):
    """Dashboard test client in mock mode."""
    settings.mock_mode = True
    return TestClient(create_app(settings))


@pytest.fixture
def live_app(settings):
    """Dashboard application talking to a (patched) cluster."""
    return create_app(settings)


@pytest.fixture
def live_client(live_app):
    """Test client for the live dashboard application."""
    return TestClient(live_app)
