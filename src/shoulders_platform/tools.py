"""
Platform operations exposed as MCP tools
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from shoulders_platform.aggregation import run_all, summarize_delete
from shoulders_platform.apply import ApplyOutcome, apply_resource
from shoulders_platform.config import KubeconfigFile, Settings, WorkspacePreferences
from shoulders_platform.exceptions import (
    ValidationError,
    handle_kubernetes_errors,
    log_operation_start,
    log_operation_success,
)
from shoulders_platform.k8s_utils import KubeClients, ResourceRef, build_kube_clients
from shoulders_platform.models import ToolResponse
from shoulders_platform.observability import ObservabilityClient
from shoulders_platform.platform_status import collect_platform_status
from shoulders_platform.resources import (
    EVENT_STREAM,
    STATE_STORE,
    WEB_APPLICATION,
    WORKSPACE,
    event_stream_manifest,
    state_store_manifest,
    web_application_manifest,
    workspace_manifest,
)
from shoulders_platform.validation import clamp, truncate, validate_k8s_name

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 200
DEFAULT_SINCE_SECONDS = 300
POD_LOG_OUTPUT_LIMIT = 12000


def _ok(message: str, data: Any = None, source: str = "kubernetes", **meta: Any) -> ToolResponse:
    return ToolResponse(ok=True, message=message, data=data, meta={"source": source, **meta})


class PlatformTools:
    """Operations behind the MCP tools.

    Kubernetes clients are built per call from the kubeconfig so that a
    ``use_cluster`` switch applies to the next call.
    """

    def __init__(
        self,
        settings: Settings,
        clients_factory: Callable[[], KubeClients] | None = None,
        preferences: WorkspacePreferences | None = None,
        kubeconfig: KubeconfigFile | None = None,
        observability: ObservabilityClient | None = None,
    ) -> None:
        self.settings = settings
        self._clients_factory = clients_factory or (
            lambda: build_kube_clients(str(settings.kubeconfig_path))
        )
        self.preferences = preferences or WorkspacePreferences(settings.preferences_path)
        self.kubeconfig = kubeconfig or KubeconfigFile(settings.kubeconfig_path)
        self.observability = observability or ObservabilityClient(settings)

    def clients(self) -> KubeClients:
        return self._clients_factory()

    def resolve_namespace(self, explicit: str | None) -> str:
        """Explicit namespace if given, else the current workspace"""
        if explicit and explicit.strip():
            return validate_k8s_name(explicit, "namespace")
        current = self.preferences.get_current()
        if not current:
            raise ValidationError(
                "no active workspace: call use_workspace first or pass a namespace"
            )
        return current

    async def _apply(self, ref: ResourceRef, manifest: dict[str, Any], kind: str) -> ApplyOutcome:
        resource_id = f"{ref.namespace}/{ref.name}" if ref.namespace else str(ref.name)
        log_operation_start("apply", kind, resource_id)
        outcome = await asyncio.to_thread(apply_resource, self.clients().store, ref, manifest)
        log_operation_success(outcome.action.value, kind, resource_id)
        return outcome

    # Workspaces

    @handle_kubernetes_errors("creating", "Workspace")
    async def create_workspace(self, *, name: str) -> ToolResponse:
        manifest = workspace_manifest(name)
        outcome = await self._apply(WORKSPACE.ref(name), manifest, "Workspace")
        return _ok("Workspace created", outcome.body, action=outcome.action.value)

    @handle_kubernetes_errors("listing", "Workspace")
    async def list_workspaces(self) -> ToolResponse:
        items = await asyncio.to_thread(self.clients().store.list, WORKSPACE.ref())
        return _ok("Workspaces listed", items)

    @handle_kubernetes_errors("selecting", "Workspace")
    async def use_workspace(self, *, name: str) -> ToolResponse:
        validate_k8s_name(name, "workspace name")
        await asyncio.to_thread(self.clients().store.get, WORKSPACE.ref(name))
        self.preferences.set_current(name)
        return _ok("Workspace selected", name)

    async def current_workspace(self) -> ToolResponse:
        current = self.preferences.get_current()
        return _ok("Current workspace", current or "No workspace selected")

    @handle_kubernetes_errors("deleting", "Workspace")
    async def delete_workspace(self, *, name: str) -> ToolResponse:
        validate_k8s_name(name, "workspace name")
        log_operation_start("delete", "Workspace", name)
        await asyncio.to_thread(self.clients().store.delete, WORKSPACE.ref(name))
        log_operation_success("delete", "Workspace", name)
        return _ok("Workspace deleted", name)

    # Applications

    @handle_kubernetes_errors("deploying", "WebApplication")
    async def deploy_app(
        self,
        *,
        name: str,
        namespace: str,
        image: str,
        tag: str | None = None,
        replicas: int | None = None,
        host: str | None = None,
        port: int | None = None,
    ) -> ToolResponse:
        manifest = web_application_manifest(name, namespace, image, tag, replicas, host, port)
        outcome = await self._apply(
            WEB_APPLICATION.ref(name, namespace), manifest, "WebApplication"
        )
        return _ok("Application deployed", outcome.body, action=outcome.action.value)

    @handle_kubernetes_errors("listing", "WebApplication")
    async def list_apps(self, *, namespace: str | None = None) -> ToolResponse:
        target = self.resolve_namespace(namespace)
        items = await asyncio.to_thread(
            self.clients().store.list, WEB_APPLICATION.ref(namespace=target)
        )
        return _ok("Applications listed", items, namespace=target)

    @handle_kubernetes_errors("reading", "WebApplication")
    async def get_app_status(self, *, name: str, namespace: str) -> ToolResponse:
        validate_k8s_name(name, "app name")
        validate_k8s_name(namespace, "namespace")
        result = await asyncio.to_thread(
            self.clients().store.get, WEB_APPLICATION.ref(name, namespace)
        )
        return _ok("Application status", result)

    @handle_kubernetes_errors("deleting", "WebApplication")
    async def delete_app(self, *, name: str, namespace: str) -> ToolResponse:
        validate_k8s_name(name, "app name")
        validate_k8s_name(namespace, "namespace")
        log_operation_start("delete", "WebApplication", f"{namespace}/{name}")
        await asyncio.to_thread(self.clients().store.delete, WEB_APPLICATION.ref(name, namespace))
        log_operation_success("delete", "WebApplication", f"{namespace}/{name}")
        return _ok("Application deleted", name)

    # Infrastructure

    @handle_kubernetes_errors("creating", "StateStore")
    async def add_database(
        self, *, name: str, namespace: str, type: str | None = None, tier: str | None = None
    ) -> ToolResponse:
        manifest = state_store_manifest(name, namespace, type, tier)
        outcome = await self._apply(STATE_STORE.ref(name, namespace), manifest, "StateStore")
        return _ok("Infrastructure created", outcome.body, action=outcome.action.value)

    @handle_kubernetes_errors("creating", "EventStream")
    async def add_stream(
        self,
        *,
        name: str,
        namespace: str,
        topics: list[str],
        partitions: int | None = None,
        replicas: int | None = None,
        config: dict[str, Any] | None = None,
    ) -> ToolResponse:
        manifest = event_stream_manifest(name, namespace, topics, partitions, replicas, config)
        outcome = await self._apply(EVENT_STREAM.ref(name, namespace), manifest, "EventStream")
        return _ok("Event stream created", outcome.body, action=outcome.action.value)

    @handle_kubernetes_errors("listing", "infrastructure")
    async def list_infra(self, *, namespace: str | None = None) -> ToolResponse:
        target = self.resolve_namespace(namespace)
        store = self.clients().store
        stores, streams = await asyncio.gather(
            asyncio.to_thread(store.list, STATE_STORE.ref(namespace=target)),
            asyncio.to_thread(store.list, EVENT_STREAM.ref(namespace=target)),
        )
        return _ok("Infrastructure listed", [*stores, *streams], namespace=target)

    @handle_kubernetes_errors("deleting", "infrastructure")
    async def delete_infra(self, *, name: str, namespace: str) -> ToolResponse:
        validate_k8s_name(name, "resource name")
        validate_k8s_name(namespace, "namespace")
        store = self.clients().store
        log_operation_start("delete", "infrastructure", f"{namespace}/{name}")
        result = await asyncio.to_thread(
            run_all,
            [
                (kind.kind, lambda kind=kind: store.delete(kind.ref(name, namespace)))
                for kind in (STATE_STORE, EVENT_STREAM)
            ],
        )
        message = summarize_delete(result, name)
        log_operation_success("delete", "infrastructure", f"{namespace}/{name}")
        return _ok("Infrastructure deleted", name, detail=message)

    # Platform and clusters

    async def get_platform_status(self) -> ToolResponse:
        clients = self.clients()
        status = await asyncio.to_thread(
            collect_platform_status, clients.version, clients.core, clients.store
        )
        return _ok("Platform status", status.model_dump())

    async def list_clusters(self) -> ToolResponse:
        return _ok("Clusters listed", self.kubeconfig.list_kind_clusters())

    async def use_cluster(self, *, name: str) -> ToolResponse:
        validate_k8s_name(name, "cluster name")
        context = f"kind-{name}"
        self.kubeconfig.set_current_context(context)
        return _ok("Cluster selected", {"name": name, "context": context})

    # Observability

    @handle_kubernetes_errors("reading logs for", "WebApplication")
    async def get_app_logs(
        self,
        *,
        name: str,
        namespace: str | None = None,
        limit: int | None = None,
        since_seconds: int | None = None,
    ) -> ToolResponse:
        validate_k8s_name(name, "app name")
        limit = clamp(limit, DEFAULT_LOG_LIMIT, 1, 2000)
        since_seconds = clamp(since_seconds, DEFAULT_SINCE_SECONDS, 60, 3600)

        try:
            logs = await self.observability.query_loki(name, limit, since_seconds)
            return _ok("Application logs", logs, source="loki")
        except Exception as e:
            logger.warning("Loki query failed, falling back to pod logs: %s", e)

        target = self.resolve_namespace(namespace)
        core = self.clients().core
        selector = f"app={name}"
        pods = await asyncio.to_thread(
            core.list_namespaced_pod, namespace=target, label_selector=selector
        )
        if not pods.items:
            raise ValidationError(f"no pods found for selector {selector}")

        output: list[str] = []
        for pod in pods.items:
            pod_name = pod.metadata.name if pod.metadata else None
            if not pod_name:
                continue
            text = await asyncio.to_thread(
                core.read_namespaced_pod_log,
                name=pod_name,
                namespace=target,
                since_seconds=since_seconds,
                tail_lines=limit,
            )
            output.extend([f"--- pod/{pod_name} ---", text or ""])
        return _ok(
            "Application logs",
            {"output": truncate("\n".join(output), POD_LOG_OUTPUT_LIMIT)},
            namespace=target,
        )

    async def get_trace(self, *, trace_id: str) -> ToolResponse:
        trace = await self.observability.query_tempo(trace_id)
        return _ok("Trace fetched", trace, source="tempo")
