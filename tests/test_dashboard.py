"""Tests for the dashboard API."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
import yaml

from shoulders_platform.dashboard.routes.apply import MISSING_FIELDS
from shoulders_platform.exceptions import KubeconfigError
from shoulders_platform.k8s_utils import ResourceRef
from shoulders_platform.resources import CLUSTER_SCOPED_KINDS, WEB_APPLICATION, WORKSPACE

from .conftest import api_error


def _yaml(*documents):
    return yaml.safe_dump_all(documents)


def _namespace(name):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name, creation_timestamp=datetime(2024, 5, 1, tzinfo=UTC))
    )


def _ref_for(manifest):
    group, _, version = manifest["apiVersion"].rpartition("/")
    metadata = manifest["metadata"]
    namespaced = manifest["kind"] not in CLUSTER_SCOPED_KINDS
    return ResourceRef(
        group=group,
        version=version,
        plural=f"{manifest['kind'].lower()}s",
        namespace=metadata.get("namespace") if namespaced else None,
        name=metadata["name"],
    )


class TestMockMode:
    """Test canned responses served without a cluster."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "shoulders-dashboard"

    def test_root_lists_endpoints(self, client):
        response = client.get("/")

        assert "/api/summary" in response.json()["endpoints"]

    def test_contexts(self, client):
        data = client.get("/api/contexts").json()

        assert data == {"current": "kind-shoulders", "contexts": ["kind-shoulders", "prod-cluster"]}

    def test_select_context(self, client):
        response = client.post("/api/context", json={"context": "prod-cluster"})

        assert response.status_code == 200
        assert response.json() == {"current": "prod-cluster"}

    def test_select_context_requires_name(self, client):
        response = client.post("/api/context", json={})

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing context name."

    def test_namespaces(self, client):
        assert client.get("/api/namespaces").json() == {"items": [{"name": "team-a"}, {"name": "team-b"}]}

    def test_summary(self, client):
        data = client.get("/api/summary").json()

        assert data["counts"] == {
            "workspaces": 2,
            "webApplications": 3,
            "stateStores": 1,
            "eventStreams": 1,
        }
        assert data["server"] == "https://127.0.0.1:6443"
        assert data["warnings"] == []

    def test_resources_empty(self, client):
        assert client.get("/api/resources/webapplications").json() == {"items": []}

    def test_unknown_kind(self, client):
        response = client.get("/api/resources/Pods")

        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown kind: pods"

    def test_apply_requires_yaml(self, client):
        response = client.post("/api/apply", json={})

        assert response.status_code == 400
        assert response.json() == {"applied": [], "errors": ["Missing yaml payload."]}

    def test_apply_parse_error(self, client):
        response = client.post("/api/apply", json={"yaml": "kind: [unclosed"})

        assert response.status_code == 400
        assert response.json()["errors"][0].startswith("YAML parse failed:")

    def test_apply_echoes_documents(self, client):
        payload = _yaml(
            {"apiVersion": "shoulders.io/v1alpha1", "kind": "Workspace", "metadata": {"name": "team-a"}},
            {"apiVersion": "shoulders.io/v1alpha1", "kind": "WebApplication", "metadata": {"name": "web"}},
            {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cfg", "namespace": "other"}},
            {"apiVersion": "v1", "metadata": {"name": "no-kind"}},
        )

        response = client.post("/api/apply", json={"yaml": payload, "namespace": "team-a"})

        assert response.status_code == 200
        data = response.json()
        assert [(a["kind"], a["namespace"]) for a in data["applied"]] == [
            ("Workspace", ""),
            ("WebApplication", "team-a"),
            ("ConfigMap", "other"),
        ]
        assert data["errors"] == [MISSING_FIELDS]

    def test_apply_namespace_defaults_to_default(self, client):
        payload = _yaml({"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cfg"}})

        data = client.post("/api/apply", json={"yaml": payload}).json()

        assert data["applied"][0]["namespace"] == "default"

    def test_create_defaults_for_namespaced_kind(self, client):
        response = client.get("/api/resources/statestores/defaults", params={"namespace": "team-a"})

        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "StateStore"
        assert data["namespaced"] is True
        assert data["createPath"] == "/apis/shoulders.io/v1alpha1/namespaces/team-a/statestores"
        assert data["form"]["namespace"] == "team-a"
        assert data["form"]["webapp"]["image"] == "nginx"
        assert data["form"]["stateStore"]["postgresStorage"] == "1Gi"

    def test_create_defaults_for_cluster_scoped_kind(self, client):
        data = client.get("/api/resources/workspace/defaults", params={"namespace": "team-a"}).json()

        assert data["namespaced"] is False
        assert data["createPath"] == "/apis/shoulders.io/v1alpha1/workspaces"
        assert data["form"]["namespace"] == ""

    def test_create_defaults_without_namespace(self, client):
        data = client.get("/api/resources/webapps/defaults").json()

        assert data["createPath"] == "/apis/shoulders.io/v1alpha1/webapplications"
        assert data["form"]["namespace"] == ""

    def test_create_defaults_rejects_bad_input(self, client):
        assert client.get("/api/resources/pods/defaults").status_code == 400
        response = client.get("/api/resources/webapps/defaults", params={"namespace": "Team_A"})

        assert response.status_code == 400
        assert "DNS-1123" in response.json()["detail"]

    def test_create_form_validation(self, client):
        response = client.post(
            "/api/resources/webapplications", json={"name": "web", "namespace": "team-a"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Image, tag, and host are required."

    def test_create_form_echo(self, client):
        form = {"name": "web", "namespace": "team-a", "webapp": {"host": "web.local", "replicas": "2"}}

        response = client.post("/api/resources/webapps", json=form)

        assert response.status_code == 200
        data = response.json()
        assert data["action"] == "created"
        assert data["manifest"]["spec"]["replicas"] == 2
        assert "kind: WebApplication" in data["yaml"]


@pytest.fixture
def cluster(live_app, kubeconfig_file, fake_store):
    """Patch the live session's clients with an in-memory store and a mock CoreV1Api."""
    core = Mock()
    core.list_namespace.return_value = SimpleNamespace(items=[_namespace("team-a"), _namespace("kube-system")])
    clients = SimpleNamespace(store=fake_store, core=core, api_client=Mock())
    fake_store.ref_for = _ref_for
    session = live_app.state.session
    with (
        patch.object(session, "clients", return_value=clients),
        patch.object(session, "dynamic_store", return_value=fake_store),
    ):
        yield clients


class TestLiveContexts:
    """Test context selection against a kubeconfig."""

    def test_contexts_from_kubeconfig(self, live_client, kubeconfig_file):
        data = live_client.get("/api/contexts").json()

        assert data["current"] == "kind-shoulders"
        assert data["contexts"] == ["kind-shoulders", "prod-cluster", "kind-dev"]

    def test_select_context_is_held_in_memory(self, live_client, kubeconfig_file):
        with patch("shoulders_platform.dashboard.session.build_kube_clients") as build:
            response = live_client.post("/api/context", json={"context": "kind-dev"})

        assert response.status_code == 200
        build.assert_called_once_with(str(kubeconfig_file), "kind-dev")
        assert live_client.get("/api/contexts").json()["current"] == "kind-dev"
        assert yaml.safe_load(kubeconfig_file.read_text())["current-context"] == "kind-shoulders"

    def test_select_context_failure(self, live_client, kubeconfig_file):
        error = KubeconfigError("could not load Kubernetes configuration", "loading", "kubeconfig")
        with patch("shoulders_platform.dashboard.session.build_kube_clients", side_effect=error):
            response = live_client.post("/api/context", json={"context": "missing"})

        assert response.status_code == 503
        assert response.json()["detail"].startswith("[environment] could not load")
        assert live_client.get("/api/contexts").json()["current"] == "kind-shoulders"

    def test_contexts_without_kubeconfig(self, live_client):
        response = live_client.get("/api/contexts")

        assert response.status_code == 200
        assert response.json() == {"current": None, "contexts": []}

    def test_invalid_kubeconfig_is_an_error(self, live_client, settings):
        settings.kubeconfig_path.parent.mkdir(parents=True, exist_ok=True)
        settings.kubeconfig_path.write_text("contexts: [unterminated\n")

        response = live_client.get("/api/contexts")

        assert response.status_code == 503

    def test_namespaces(self, live_client, cluster):
        data = live_client.get("/api/namespaces").json()

        assert data == {"items": [{"name": "team-a"}, {"name": "kube-system"}]}


class TestLiveSummary:
    """Test the summary endpoint against a patched cluster."""

    def test_summary(self, live_client, cluster, fake_store):
        fake_store.seed(WORKSPACE.ref("team-a"), {"metadata": {"name": "team-a"}})
        fake_store.seed(WEB_APPLICATION.ref("web", "team-a"), {"metadata": {"name": "web", "namespace": "team-a"}})
        fake_store.seed(WEB_APPLICATION.ref("api", "team-b"), {"metadata": {"name": "api", "namespace": "team-b"}})

        data = live_client.get("/api/summary").json()

        assert data["context"] == "kind-shoulders"
        assert data["cluster"] == "kind-shoulders"
        assert data["server"] == "https://127.0.0.1:6443"
        assert data["counts"] == {
            "workspaces": 1,
            "webApplications": 2,
            "stateStores": 0,
            "eventStreams": 0,
        }
        assert data["warnings"] == []

    def test_workspace_failure_falls_back_to_namespaces(self, live_client, cluster, fake_store):
        fake_store.fail("list", "workspaces", api_error(403, "workspaces is forbidden"))
        fake_store.fail("list", "eventstreams", api_error(404))

        data = live_client.get("/api/summary").json()

        assert data["counts"]["workspaces"] == 2
        assert data["resources"]["workspaces"][0]["createdAt"].startswith("2024-05-01")
        assert data["warnings"][0] == "workspaces: workspaces is forbidden"
        assert data["warnings"][1].startswith("eventstreams:")

    def test_summary_without_kubeconfig_uses_in_cluster_clients(self, live_client, settings, fake_store):
        fake_store.seed(WORKSPACE.ref("team-a"), {"metadata": {"name": "team-a"}})
        clients = SimpleNamespace(store=fake_store, core=Mock())

        with patch(
            "shoulders_platform.dashboard.session.build_kube_clients", return_value=clients
        ) as build:
            response = live_client.get("/api/summary")

        assert response.status_code == 200
        build.assert_called_once_with(str(settings.kubeconfig_path), None)
        data = response.json()
        assert data["context"] is None
        assert data["cluster"] is None
        assert data["server"] is None
        assert data["counts"]["workspaces"] == 1
        assert data["warnings"] == []

    def test_kubeconfig_failure_is_a_warning(self, live_client):
        error = KubeconfigError(
            "could not load Kubernetes configuration: Service host/port is not set.",
            "loading",
            "kubeconfig",
        )
        with patch("shoulders_platform.dashboard.session.build_kube_clients", side_effect=error):
            response = live_client.get("/api/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["counts"]["workspaces"] == 0
        assert data["warnings"][0].startswith("kubeconfig: could not load Kubernetes configuration")


class TestLiveResources:
    """Test listing and form creation against a patched cluster."""

    def test_list(self, live_client, cluster, fake_store):
        fake_store.seed(
            WEB_APPLICATION.ref("web", "team-a"),
            {
                "metadata": {"name": "web", "namespace": "team-a"},
                "status": {"conditions": [{"type": "Ready", "status": "True"}]},
            },
        )

        data = live_client.get("/api/resources/webapps").json()

        assert data["items"][0]["name"] == "web"
        assert data["items"][0]["ready"] is True

    def test_list_failure_maps_status(self, live_client, cluster, fake_store):
        fake_store.fail("list", "statestores", api_error(500, "etcd timeout"))

        response = live_client.get("/api/resources/statestores")

        assert response.status_code == 502
        assert response.json()["detail"] == "[external] etcd timeout"

    def test_create_then_update(self, live_client, cluster, fake_store):
        first = live_client.post("/api/resources/workspaces", json={"name": "team-c"})
        second = live_client.post("/api/resources/workspaces", json={"name": "team-c"})

        assert first.json()["action"] == "created"
        assert second.json()["action"] == "updated"
        assert fake_store.mutations() == ["create", "replace"]

    def test_create_schema_failure(self, live_client, cluster, fake_store):
        form = {"name": "orders", "namespace": "team-a", "stateStore": {"postgresStorage": "lots"}}

        response = live_client.post("/api/resources/statestores", json=form)

        assert response.status_code == 400
        assert "postgresql -> storage" in response.json()["detail"]
        assert fake_store.calls == []


class TestLiveApply:
    """Test YAML apply against a patched cluster."""

    def test_partial_failure_does_not_abort(self, live_client, cluster, fake_store):
        payload = _yaml(
            {"apiVersion": "shoulders.io/v1alpha1", "kind": "Workspace", "metadata": {"name": "team-a"}, "spec": {}},
            {
                "apiVersion": "shoulders.io/v1alpha1",
                "kind": "WebApplication",
                "metadata": {"name": "bad"},
                "spec": {"image": "nginx", "tag": "latest", "replicas": 0, "host": "bad.local"},
            },
            {
                "apiVersion": "shoulders.io/v1alpha1",
                "kind": "WebApplication",
                "metadata": {"name": "web"},
                "spec": {"image": "nginx", "tag": "latest", "replicas": 1, "host": "web.local"},
            },
        )

        data = live_client.post("/api/apply", json={"yaml": payload, "namespace": "team-a"}).json()

        assert [(a["kind"], a["name"], a["action"]) for a in data["applied"]] == [
            ("Workspace", "team-a", "created"),
            ("WebApplication", "web", "created"),
        ]
        assert len(data["errors"]) == 1
        assert data["errors"][0].startswith("WebApplication/bad: WebApplication 'bad' is invalid at replicas")
        assert ("webapplications", "team-a", "web") in fake_store.objects

    def test_reapply_updates(self, live_client, cluster):
        payload = _yaml({"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cfg"}, "data": {"a": "1"}})

        live_client.post("/api/apply", json={"yaml": payload})
        data = live_client.post("/api/apply", json={"yaml": payload}).json()

        assert data["applied"] == [
            {"kind": "ConfigMap", "name": "cfg", "namespace": "default", "action": "updated"}
        ]

    def test_api_error_is_reported_per_document(self, live_client, cluster, fake_store):
        fake_store.fail("get", "configmaps", api_error(403, "configmaps is forbidden"))
        payload = _yaml({"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cfg"}})

        data = live_client.post("/api/apply", json={"yaml": payload}).json()

        assert data["applied"] == []
        assert data["errors"] == ["ConfigMap/cfg: configmaps is forbidden"]

    def test_kubeconfig_failure(self, live_app, live_client, kubeconfig_file):
        error = KubeconfigError("could not load Kubernetes configuration", "loading", "kubeconfig")
        payload = _yaml({"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cfg"}})

        with patch.object(live_app.state.session, "dynamic_store", side_effect=error):
            response = live_client.post("/api/apply", json={"yaml": payload})

        assert response.status_code == 503
        assert response.json()["errors"] == ["kubeconfig: could not load Kubernetes configuration"]
