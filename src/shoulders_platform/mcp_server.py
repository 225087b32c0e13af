"""
MCP server exposing platform operations as tools over stdio
"""

import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.fastmcp.resources import FileResource

from shoulders_platform._version import __version__
from shoulders_platform.config import Settings
from shoulders_platform.exceptions import format_error
from shoulders_platform.models import ToolResponse
from shoulders_platform.tools import PlatformTools

logger = logging.getLogger(__name__)

_XRD_DIR = ("2-addons", "manifests", "crossplane", "definitions")
_EXAMPLES_DIR = ("3-user-space", "team-a")

# uri -> (relative path, name, description)
RESOURCE_INDEX: dict[str, tuple[tuple[str, ...], str, str]] = {
    "shoulders://schemas/workspace": (
        (*_XRD_DIR, "workspace-xrd.yaml"),
        "Workspace Schema",
        "Crossplane XRD for Workspaces",
    ),
    "shoulders://schemas/webapplication": (
        (*_XRD_DIR, "application-xrd.yaml"),
        "WebApplication Schema",
        "Crossplane XRD for WebApplications",
    ),
    "shoulders://schemas/state-store": (
        (*_XRD_DIR, "state-store-xrd.yaml"),
        "StateStore Schema",
        "Crossplane XRD for StateStores",
    ),
    "shoulders://schemas/event-stream": (
        (*_XRD_DIR, "event-stream-xrd.yaml"),
        "EventStream Schema",
        "Crossplane XRD for EventStreams",
    ),
    "shoulders://examples/workspace": (
        (*_EXAMPLES_DIR, "workspace.yaml"),
        "Workspace Example",
        "Sample Workspace manifest",
    ),
    "shoulders://examples/webapplication": (
        (*_EXAMPLES_DIR, "webapp.yaml"),
        "WebApplication Example",
        "Sample WebApplication manifest",
    ),
    "shoulders://examples/state-store": (
        (*_EXAMPLES_DIR, "state-store.yaml"),
        "StateStore Example",
        "Sample StateStore manifest",
    ),
    "shoulders://examples/event-stream": (
        (*_EXAMPLES_DIR, "event-stream.yaml"),
        "EventStream Example",
        "Sample EventStream manifest",
    ),
}


def available_resources(repo_root: Path) -> list[FileResource]:
    """File resources for the schema and example documents present under repo_root"""
    resources = []
    for uri, (parts, name, description) in RESOURCE_INDEX.items():
        path = repo_root.joinpath(*parts).resolve()
        if not path.exists():
            logger.debug("Skipping resource %s, %s does not exist", uri, path)
            continue
        resources.append(
            FileResource(
                uri=uri, name=name, description=description, mime_type="text/yaml", path=path
            )
        )
    return resources


async def run_tool(operation: Callable[..., Awaitable[ToolResponse]], **kwargs: Any) -> str:
    """Run one operation and render its response as JSON text.

    Failures become a ToolError whose text starts with the error category,
    e.g. ``[not_found] WebApplication 'team-a/web' does not exist``.
    """
    try:
        response = await operation(**kwargs)
    except Exception as e:
        message = format_error(e)
        logger.error("Tool %s failed: %s", getattr(operation, "__name__", "tool"), message)
        raise ToolError(message) from None
    return response.model_dump_json(exclude_none=True)


def create_server(tools: PlatformTools | None = None, settings: Settings | None = None) -> FastMCP:
    settings = settings or Settings.from_env()
    tools = tools or PlatformTools(settings)
    mcp = FastMCP("shoulders-mcp-server")

    @mcp.tool()
    async def create_workspace(name: str) -> str:
        """Create or update a cluster-scoped Workspace."""
        return await run_tool(tools.create_workspace, name=name)

    @mcp.tool()
    async def list_workspaces() -> str:
        """List all Workspaces."""
        return await run_tool(tools.list_workspaces)

    @mcp.tool()
    async def use_workspace(name: str) -> str:
        """Select an existing Workspace as the default namespace for later calls."""
        return await run_tool(tools.use_workspace, name=name)

    @mcp.tool()
    async def current_workspace() -> str:
        """Show the currently selected Workspace."""
        return await run_tool(tools.current_workspace)

    @mcp.tool()
    async def delete_workspace(name: str) -> str:
        """Delete a Workspace."""
        return await run_tool(tools.delete_workspace, name=name)

    @mcp.tool()
    async def deploy_app(
        name: str,
        namespace: str,
        image: str,
        tag: str | None = None,
        replicas: int | None = None,
        host: str | None = None,
        port: int | None = None,
    ) -> str:
        """Create or update a WebApplication.

        Args:
            name: Application name
            namespace: Target namespace
            image: Container image, optionally with ':tag'
            tag: Image tag, overrides a tag in image
            replicas: Replica count (default 1)
            host: Routing hostname (default '<name>.local')
            port: Container port (default 80, 0 disables the port annotation)
        """
        return await run_tool(
            tools.deploy_app,
            name=name,
            namespace=namespace,
            image=image,
            tag=tag,
            replicas=replicas,
            host=host,
            port=port,
        )

    @mcp.tool()
    async def list_apps(namespace: str | None = None) -> str:
        """List WebApplications in a namespace, or in the current workspace."""
        return await run_tool(tools.list_apps, namespace=namespace)

    @mcp.tool()
    async def get_app_status(name: str, namespace: str) -> str:
        """Get a WebApplication with its status."""
        return await run_tool(tools.get_app_status, name=name, namespace=namespace)

    @mcp.tool()
    async def delete_app(name: str, namespace: str) -> str:
        """Delete a WebApplication."""
        return await run_tool(tools.delete_app, name=name, namespace=namespace)

    @mcp.tool()
    async def add_database(
        name: str, namespace: str, type: str = "postgres", tier: str = "dev"
    ) -> str:
        """Create or update a StateStore.

        Args:
            name: Resource name, also used as the database name
            namespace: Target namespace
            type: postgres, postgresql or redis
            tier: dev (1Gi) or prod (10Gi)
        """
        return await run_tool(
            tools.add_database, name=name, namespace=namespace, type=type, tier=tier
        )

    @mcp.tool()
    async def add_stream(
        name: str,
        namespace: str,
        topics: list[str],
        partitions: int | None = None,
        replicas: int | None = None,
        config: dict[str, str] | None = None,
    ) -> str:
        """Create or update an EventStream with one entry per topic."""
        return await run_tool(
            tools.add_stream,
            name=name,
            namespace=namespace,
            topics=topics,
            partitions=partitions,
            replicas=replicas,
            config=config,
        )

    @mcp.tool()
    async def list_infra(namespace: str | None = None) -> str:
        """List StateStores and EventStreams in a namespace, or in the current workspace."""
        return await run_tool(tools.list_infra, namespace=namespace)

    @mcp.tool()
    async def delete_infra(name: str, namespace: str) -> str:
        """Delete the StateStore and EventStream sharing a name."""
        return await run_tool(tools.delete_infra, name=name, namespace=namespace)

    @mcp.tool()
    async def get_platform_status() -> str:
        """Summarize Kubernetes, Flux, Crossplane and Gateway health."""
        return await run_tool(tools.get_platform_status)

    @mcp.tool()
    async def list_clusters() -> str:
        """List local kind clusters from the kubeconfig."""
        return await run_tool(tools.list_clusters)

    @mcp.tool()
    async def use_cluster(name: str) -> str:
        """Switch the kubeconfig current context to a kind cluster."""
        return await run_tool(tools.use_cluster, name=name)

    @mcp.tool()
    async def get_app_logs(
        name: str,
        namespace: str | None = None,
        limit: int | None = None,
        since_seconds: int | None = None,
    ) -> str:
        """Fetch recent application logs from Loki, falling back to pod logs.

        Args:
            name: Application name (matched on the 'app' label)
            namespace: Namespace for the pod log fallback
            limit: Maximum lines, 1-2000 (default 200)
            since_seconds: Lookback window, 60-3600 (default 300)
        """
        return await run_tool(
            tools.get_app_logs,
            name=name,
            namespace=namespace,
            limit=limit,
            since_seconds=since_seconds,
        )

    @mcp.tool()
    async def get_trace(trace_id: str) -> str:
        """Fetch a trace from Tempo by ID."""
        return await run_tool(tools.get_trace, trace_id=trace_id)

    for resource in available_resources(settings.repo_root):
        mcp.add_resource(resource)

    return mcp


def main() -> None:
    """Main entry point"""
    settings = Settings.from_env()
    # stdout carries the protocol
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logger.info("Starting shoulders MCP server %s", __version__)
    create_server(settings=settings).run(transport="stdio")


if __name__ == "__main__":
    main()
