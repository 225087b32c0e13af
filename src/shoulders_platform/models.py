"""
Data models for the Shoulders platform tooling
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ToolResponse(BaseModel):
    """Payload returned as JSON text by every MCP tool"""

    ok: bool = Field(..., description="Whether the tool call succeeded")
    message: str = Field(..., description="Short human readable summary")
    data: Any = Field(default=None, description="Tool result")
    meta: dict[str, Any] = Field(default_factory=dict, description="Source and action details")


class ComponentError(BaseModel):
    """Failed health check"""

    item: str = Field(..., description="Check name")
    message: str = Field(..., description="Failure message")


class PlatformStatus(BaseModel):
    """Aggregated platform health summary"""

    k8sVersion: str = Field(default="unknown", description="Kubernetes server version")
    nodesReady: bool = Field(default=False, description="All nodes report Ready")
    nodeCount: int = Field(default=0, description="Number of nodes")
    fluxReady: bool = Field(default=False, description="All Flux kustomizations are Ready")
    fluxBroken: list[str] = Field(default_factory=list, description="Kustomizations not Ready")
    crossplaneReady: bool = Field(default=False, description="All Crossplane providers Healthy")
    crossplaneBroken: list[str] = Field(default_factory=list, description="Unhealthy providers")
    gatewayReady: bool = Field(default=False, description="A Gateway exists")
    gatewayAddress: str = Field(default="Pending", description="First Gateway address")
    notInstalled: list[str] = Field(
        default_factory=list, description="Components whose API is not served"
    )
    errors: list[ComponentError] = Field(default_factory=list, description="Failed checks")


class ResourceItem(BaseModel):
    """Platform resource summary used by the dashboard"""

    name: str = Field(..., description="Resource name")
    namespace: str = Field(default="", description="Namespace (empty when cluster scoped)")
    createdAt: str = Field(default="", description="Creation timestamp")
    synced: bool | None = Field(default=None, description="Synced condition")
    ready: bool | None = Field(default=None, description="Ready condition")


class ResourceListResponse(BaseModel):
    """Resource list response"""

    items: list[ResourceItem] = Field(..., description="Resources")


class ContextsResponse(BaseModel):
    """Kube contexts response"""

    current: str | None = Field(default=None, description="Active context")
    contexts: list[str] = Field(..., description="Known contexts")


class ContextSelectRequest(BaseModel):
    """Kube context selection request"""

    context: str | None = Field(default=None, description="Context name")


class ContextSelectResponse(BaseModel):
    """Kube context selection response"""

    current: str = Field(..., description="Selected context")


class NamespaceItem(BaseModel):
    """Namespace reference"""

    name: str = Field(..., description="Namespace name")


class NamespaceListResponse(BaseModel):
    """Namespace list response"""

    items: list[NamespaceItem] = Field(..., description="Namespaces")


class ResourceCounts(BaseModel):
    """Per-kind resource counts"""

    workspaces: int = Field(default=0, description="Workspace count")
    webApplications: int = Field(default=0, description="WebApplication count")
    stateStores: int = Field(default=0, description="StateStore count")
    eventStreams: int = Field(default=0, description="EventStream count")


class ResourceGroups(BaseModel):
    """Per-kind resource references"""

    workspaces: list[ResourceItem] = Field(default_factory=list)
    webApplications: list[ResourceItem] = Field(default_factory=list)
    stateStores: list[ResourceItem] = Field(default_factory=list)
    eventStreams: list[ResourceItem] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    """Dashboard summary response"""

    context: str | None = Field(default=None, description="Current context")
    cluster: str | None = Field(default=None, description="Current cluster")
    server: str | None = Field(default=None, description="API server URL")
    counts: ResourceCounts = Field(default_factory=ResourceCounts)
    resources: ResourceGroups = Field(default_factory=ResourceGroups)
    warnings: list[str] = Field(default_factory=list, description="Partial failures")


class ApplyRequest(BaseModel):
    """YAML apply request"""

    yaml: str | None = Field(default=None, description="One or more YAML documents")
    namespace: str | None = Field(default=None, description="Default namespace")


class AppliedObject(BaseModel):
    """Object applied by the YAML apply endpoint"""

    kind: str = Field(..., description="Resource kind")
    name: str = Field(..., description="Resource name")
    namespace: str = Field(default="", description="Namespace")
    action: str | None = Field(default=None, description="created or updated")


class ApplyResponse(BaseModel):
    """YAML apply response"""

    applied: list[AppliedObject] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class WebApplicationForm(BaseModel):
    """WebApplication section of the create form"""

    image: str = Field(default="nginx", description="Container image")
    tag: str = Field(default="latest", description="Image tag")
    replicas: str = Field(default="1", description="Replica count as typed")
    host: str = Field(default="", description="Routing hostname")


class StateStoreForm(BaseModel):
    """StateStore section of the create form"""

    postgresEnabled: bool = Field(default=True)
    postgresStorage: str = Field(default="1Gi")
    postgresDatabases: str = Field(default="", description="Comma or newline separated")
    redisEnabled: bool = Field(default=True)
    redisReplicas: str = Field(default="1")


class EventStreamForm(BaseModel):
    """EventStream section of the create form"""

    topicsText: str = Field(default="", description="Comma or newline separated topics")


class CreateForm(BaseModel):
    """Dashboard create dialog state"""

    name: str = Field(default="", description="Resource name")
    namespace: str = Field(default="", description="Target namespace")
    webapp: WebApplicationForm = Field(default_factory=WebApplicationForm)
    stateStore: StateStoreForm = Field(default_factory=StateStoreForm)
    eventStream: EventStreamForm = Field(default_factory=EventStreamForm)


class CreateDefaultsResponse(BaseModel):
    """Initial create-dialog state for one kind"""

    kind: str = Field(..., description="Kind name")
    namespaced: bool = Field(..., description="Whether the kind takes a namespace")
    createPath: str = Field(..., description="REST collection path the object is created under")
    form: CreateForm = Field(..., description="Default form values")


class CreateResponse(BaseModel):
    """Form creation response"""

    action: str = Field(..., description="created or updated")
    manifest: dict[str, Any] = Field(..., description="Submitted manifest")
    yaml: str = Field(..., description="Submitted manifest as YAML")


class HealthCheck(BaseModel):
    """Health check response"""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    service: str = Field(..., description="API service")
    timestamp: datetime = Field(..., description="Check timestamp")
