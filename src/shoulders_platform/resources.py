"""
Platform resource kinds and manifest builders
"""

from dataclasses import dataclass
from typing import Any

from shoulders_platform.exceptions import ValidationError
from shoulders_platform.k8s_utils import ResourceRef
from shoulders_platform.validation import normalize_names, parse_image_tag, validate_k8s_name

GROUP = "shoulders.io"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"
PORT_ANNOTATION = "shoulders.io/port"

# Kinds that never carry a namespace when applied from YAML
CLUSTER_SCOPED_KINDS = frozenset({"Workspace", "Namespace"})

DATABASE_TYPES = ("postgres", "postgresql", "redis")


@dataclass(frozen=True)
class ResourceKind:
    """One of the platform's custom resource kinds"""

    id: str
    kind: str
    label: str
    description: str
    namespaced: bool
    aliases: tuple[str, ...] = ()

    @property
    def plural(self) -> str:
        return self.id

    @property
    def api_version(self) -> str:
        return API_VERSION

    def ref(self, name: str | None = None, namespace: str | None = None) -> ResourceRef:
        """ResourceRef for this kind; namespace is dropped for cluster-scoped kinds"""
        return ResourceRef(
            group=GROUP,
            version=VERSION,
            plural=self.plural,
            namespace=namespace if self.namespaced else None,
            name=name,
        )

    def create_path(self, namespace: str | None = None) -> str:
        """REST collection path used to create objects of this kind"""
        if self.namespaced and namespace:
            return f"/apis/{API_VERSION}/namespaces/{namespace}/{self.plural}"
        return f"/apis/{API_VERSION}/{self.plural}"


WORKSPACE = ResourceKind(
    id="workspaces",
    kind="Workspace",
    label="Workspaces",
    description="Cluster-scoped workspace foundations and guardrails.",
    namespaced=False,
    aliases=("workspace", "workspaces", "ws"),
)
WEB_APPLICATION = ResourceKind(
    id="webapplications",
    kind="WebApplication",
    label="Web Applications",
    description="Deployments with ingress, routing, and scaling.",
    namespaced=True,
    aliases=("webapp", "webapps", "webapplication", "webapplications", "apps"),
)
STATE_STORE = ResourceKind(
    id="statestores",
    kind="StateStore",
    label="State Stores",
    description="PostgreSQL and Redis services for teams.",
    namespaced=True,
    aliases=("statestore", "statestores", "state-store", "state-stores", "databases"),
)
EVENT_STREAM = ResourceKind(
    id="eventstreams",
    kind="EventStream",
    label="Event Streams",
    description="Kafka-backed topic bundles for streaming workloads.",
    namespaced=True,
    aliases=("eventstream", "eventstreams", "event-stream", "event-streams", "streams"),
)

RESOURCE_KINDS: tuple[ResourceKind, ...] = (WORKSPACE, WEB_APPLICATION, STATE_STORE, EVENT_STREAM)

_ALIASES = {alias: kind for kind in RESOURCE_KINDS for alias in kind.aliases}


def resolve_kind(value: str | None) -> ResourceKind | None:
    """Find a kind by alias, plural or Kind name (case-insensitive)"""
    if not value:
        return None
    return _ALIASES.get(value.strip().lower())


def build_manifest(
    kind: ResourceKind,
    name: str,
    namespace: str | None = None,
    spec: dict[str, Any] | None = None,
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name}
    if kind.namespaced and namespace:
        metadata["namespace"] = namespace
    if annotations:
        metadata["annotations"] = annotations
    return {
        "apiVersion": kind.api_version,
        "kind": kind.kind,
        "metadata": metadata,
        "spec": spec or {},
    }


def workspace_manifest(name: str) -> dict[str, Any]:
    validate_k8s_name(name, "workspace name")
    return build_manifest(WORKSPACE, name)


def web_application_manifest(
    name: str,
    namespace: str,
    image: str,
    tag: str | None = None,
    replicas: int | None = None,
    host: str | None = None,
    port: int | None = None,
) -> dict[str, Any]:
    """WebApplication manifest with the deploy defaults applied.

    Replicas default to 1, host to ``<name>.local`` and port to 80. A positive
    port is recorded in the ``shoulders.io/port`` annotation.
    """
    validate_k8s_name(name, "app name")
    validate_k8s_name(namespace, "namespace")
    image_name, image_tag = parse_image_tag(image, tag)
    port = 80 if port is None else port
    annotations = {PORT_ANNOTATION: str(port)} if port > 0 else None
    spec = {
        "image": image_name,
        "tag": image_tag,
        "replicas": 1 if replicas is None else replicas,
        "host": host if host and host.strip() else f"{name}.local",
    }
    return build_manifest(WEB_APPLICATION, name, namespace, spec, annotations)


def state_store_manifest(
    name: str, namespace: str, db_type: str | None = None, tier: str | None = None
) -> dict[str, Any]:
    """StateStore manifest for one database type; prod tier gets 10Gi of storage"""
    validate_k8s_name(name, "resource name")
    validate_k8s_name(namespace, "namespace")
    db_type = db_type or "postgres"
    if db_type not in DATABASE_TYPES:
        raise ValidationError(f"unsupported database type: {db_type}")
    storage = "10Gi" if (tier or "dev") == "prod" else "1Gi"
    spec = {
        "postgresql": {
            "enabled": db_type in ("postgres", "postgresql"),
            "storage": storage,
            "databases": [name],
        },
        "redis": {"enabled": db_type == "redis", "replicas": 1},
    }
    return build_manifest(STATE_STORE, name, namespace, spec)


def event_stream_manifest(
    name: str,
    namespace: str,
    topics: list[str] | None,
    partitions: int | None = None,
    replicas: int | None = None,
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    validate_k8s_name(name, "resource name")
    validate_k8s_name(namespace, "namespace")
    if not topics:
        raise ValidationError("topics must be a non-empty array")
    names = normalize_names(topics)
    if not names:
        raise ValidationError("topics must include at least one non-empty value")

    topic_specs = []
    for topic in names:
        topic_spec: dict[str, Any] = {"name": topic}
        if partitions is not None:
            topic_spec["partitions"] = partitions
        if replicas is not None:
            topic_spec["replicas"] = replicas
        if config:
            topic_spec["config"] = config
        topic_specs.append(topic_spec)
    return build_manifest(EVENT_STREAM, name, namespace, {"topics": topic_specs})
