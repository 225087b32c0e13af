"""
Kubernetes utility functions shared by the MCP server and the dashboard
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from kubernetes import client, config, dynamic
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from shoulders_platform.exceptions import KubeconfigError, ValidationError
from shoulders_platform.validation import validate_k8s_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceRef:
    """Identifies one resource instance, or a collection when name is None"""

    group: str
    version: str
    plural: str
    namespace: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if self.name is not None:
            validate_k8s_name(self.name, "name")
        if self.namespace is not None:
            validate_k8s_name(self.namespace, "namespace")

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        target = f"{self.namespace}/{self.name}" if self.namespace else str(self.name or "*")
        return f"{self.plural}.{self.group or 'core'} {target}"


class ResourceStore(Protocol):
    """Minimal CRUD surface used by apply, delete and list operations.

    Implementations raise ``kubernetes.client.rest.ApiException`` on failure.
    """

    def get(self, ref: ResourceRef) -> dict[str, Any]: ...

    def list(self, ref: ResourceRef) -> list[dict[str, Any]]: ...

    def create(self, ref: ResourceRef, body: dict[str, Any]) -> dict[str, Any]: ...

    def replace(self, ref: ResourceRef, body: dict[str, Any]) -> dict[str, Any]: ...

    def delete(self, ref: ResourceRef) -> Any: ...


class CustomObjectStore:
    """ResourceStore backed by CustomObjectsApi (custom resources only)"""

    def __init__(self, api: client.CustomObjectsApi | None = None) -> None:
        self.api = api or client.CustomObjectsApi()

    def get(self, ref: ResourceRef) -> dict[str, Any]:
        if ref.namespace:
            result = self.api.get_namespaced_custom_object(
                group=ref.group,
                version=ref.version,
                namespace=ref.namespace,
                plural=ref.plural,
                name=ref.name,
            )
        else:
            result = self.api.get_cluster_custom_object(
                group=ref.group, version=ref.version, plural=ref.plural, name=ref.name
            )
        return dict(result)

    def list(self, ref: ResourceRef) -> list[dict[str, Any]]:
        if ref.namespace:
            result = self.api.list_namespaced_custom_object(
                group=ref.group, version=ref.version, namespace=ref.namespace, plural=ref.plural
            )
        else:
            # Across all namespaces for namespaced kinds
            result = self.api.list_cluster_custom_object(
                group=ref.group, version=ref.version, plural=ref.plural
            )
        return list(result.get("items", []) or [])

    def create(self, ref: ResourceRef, body: dict[str, Any]) -> dict[str, Any]:
        if ref.namespace:
            result = self.api.create_namespaced_custom_object(
                group=ref.group,
                version=ref.version,
                namespace=ref.namespace,
                plural=ref.plural,
                body=body,
            )
        else:
            result = self.api.create_cluster_custom_object(
                group=ref.group, version=ref.version, plural=ref.plural, body=body
            )
        return dict(result)

    def replace(self, ref: ResourceRef, body: dict[str, Any]) -> dict[str, Any]:
        if ref.namespace:
            result = self.api.replace_namespaced_custom_object(
                group=ref.group,
                version=ref.version,
                namespace=ref.namespace,
                plural=ref.plural,
                name=ref.name,
                body=body,
            )
        else:
            result = self.api.replace_cluster_custom_object(
                group=ref.group, version=ref.version, plural=ref.plural, name=ref.name, body=body
            )
        return dict(result)

    def delete(self, ref: ResourceRef) -> Any:
        if ref.namespace:
            return self.api.delete_namespaced_custom_object(
                group=ref.group,
                version=ref.version,
                namespace=ref.namespace,
                plural=ref.plural,
                name=ref.name,
            )
        return self.api.delete_cluster_custom_object(
            group=ref.group, version=ref.version, plural=ref.plural, name=ref.name
        )


class DynamicObjectStore:
    """ResourceStore for any kind served by the cluster, resolved through discovery"""

    def __init__(self, dynamic_client: dynamic.DynamicClient) -> None:
        self.client = dynamic_client

    def _resource(self, ref: ResourceRef) -> Any:
        return self.client.resources.get(api_version=ref.api_version, name=ref.plural)

    def ref_for(self, manifest: dict[str, Any]) -> ResourceRef:
        """Build a ResourceRef for a manifest from its apiVersion and kind"""
        api_version = str(manifest.get("apiVersion", ""))
        kind = str(manifest.get("kind", ""))
        metadata = manifest.get("metadata") or {}
        try:
            resource = self.client.resources.get(api_version=api_version, kind=kind)
        except ResourceNotFoundError as e:
            raise ValidationError(f"{kind} ({api_version}) is not served by the cluster") from e

        group, _, version = api_version.rpartition("/")
        return ResourceRef(
            group=group,
            version=version,
            plural=resource.name,
            namespace=metadata.get("namespace") if resource.namespaced else None,
            name=metadata.get("name"),
        )

    def get(self, ref: ResourceRef) -> dict[str, Any]:
        result = self.client.get(self._resource(ref), name=ref.name, namespace=ref.namespace)
        return dict(result.to_dict())

    def list(self, ref: ResourceRef) -> list[dict[str, Any]]:
        result = self.client.get(self._resource(ref), namespace=ref.namespace)
        return list(result.to_dict().get("items", []) or [])

    def create(self, ref: ResourceRef, body: dict[str, Any]) -> dict[str, Any]:
        result = self.client.create(self._resource(ref), body=body, namespace=ref.namespace)
        return dict(result.to_dict())

    def replace(self, ref: ResourceRef, body: dict[str, Any]) -> dict[str, Any]:
        result = self.client.replace(
            self._resource(ref), body=body, name=ref.name, namespace=ref.namespace
        )
        return dict(result.to_dict())

    def delete(self, ref: ResourceRef) -> Any:
        return self.client.delete(self._resource(ref), name=ref.name, namespace=ref.namespace)


@dataclass
class KubeClients:
    """API clients built from one kubeconfig context"""

    api_client: client.ApiClient
    core: client.CoreV1Api
    custom: client.CustomObjectsApi
    version: client.VersionApi
    store: CustomObjectStore


def new_api_client(kubeconfig_path: str | None = None, context: str | None = None) -> client.ApiClient:
    """Create an ApiClient from a kubeconfig file, falling back to in-cluster config

    Raises:
        KubeconfigError: If no configuration can be loaded
    """
    try:
        if kubeconfig_path and Path(kubeconfig_path).exists():
            api_client = config.new_client_from_config(config_file=kubeconfig_path, context=context)
            logger.debug("Loaded Kubernetes configuration from %s", kubeconfig_path)
            return api_client
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
        return client.ApiClient()
    except config.ConfigException as e:
        logger.error("Could not load Kubernetes configuration: %s", e)
        raise KubeconfigError(
            f"could not load Kubernetes configuration: {e}", "loading", "kubeconfig"
        ) from e


def build_kube_clients(kubeconfig_path: str | None = None, context: str | None = None) -> KubeClients:
    api_client = new_api_client(kubeconfig_path, context)
    custom = client.CustomObjectsApi(api_client)
    return KubeClients(
        api_client=api_client,
        core=client.CoreV1Api(api_client),
        custom=custom,
        version=client.VersionApi(api_client),
        store=CustomObjectStore(custom),
    )


def has_condition(item: dict[str, Any], condition_type: str, expected: str = "True") -> bool:
    """True when status.conditions holds ``condition_type`` with the expected status"""
    conditions = (item.get("status") or {}).get("conditions") or []
    return any(
        c.get("type") == condition_type and c.get("status") == expected
        for c in conditions
        if isinstance(c, dict)
    )


def condition_status(item: dict[str, Any], condition_type: str) -> bool | None:
    """Tri-state reading of a status condition: True, False, or None when absent/unknown"""
    conditions = (item.get("status") or {}).get("conditions")
    if not isinstance(conditions, list):
        return None
    for condition in conditions:
        if isinstance(condition, dict) and condition.get("type") == condition_type:
            if condition.get("status") == "True":
                return True
            if condition.get("status") == "False":
                return False
            return None
    return None


def item_name(item: dict[str, Any]) -> str:
    return str((item.get("metadata") or {}).get("name") or "unknown")
