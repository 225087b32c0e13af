"""
Platform health summary built from independent checks
"""

import logging
from typing import Any

from kubernetes import client

from shoulders_platform.aggregation import AggregateResult, Outcome, run_all
from shoulders_platform.k8s_utils import ResourceRef, ResourceStore, has_condition, item_name
from shoulders_platform.models import ComponentError, PlatformStatus

logger = logging.getLogger(__name__)

FLUX_KUSTOMIZATIONS = ResourceRef(
    group="kustomize.toolkit.fluxcd.io",
    version="v1",
    plural="kustomizations",
    namespace="flux-system",
)
CROSSPLANE_PROVIDERS = ResourceRef(group="pkg.crossplane.io", version="v1", plural="providers")
GATEWAYS = ResourceRef(
    group="gateway.networking.k8s.io", version="v1", plural="gateways", namespace="gateway"
)


def _node_ready(node: Any) -> bool:
    conditions = (node.status.conditions if node.status else None) or []
    return any(c.type == "Ready" and c.status == "True" for c in conditions)


def _broken(items: list[dict[str, Any]], condition_type: str) -> list[str]:
    return [item_name(item) for item in items if not has_condition(item, condition_type)]


def collect_platform_status(
    version_api: client.VersionApi, core_api: client.CoreV1Api, store: ResourceStore
) -> PlatformStatus:
    """Run every health check and summarize; a failing check never hides the others"""
    result: AggregateResult = run_all(
        [
            ("kubernetes", lambda: version_api.get_code().git_version),
            ("nodes", lambda: core_api.list_node().items),
            ("flux", lambda: store.list(FLUX_KUSTOMIZATIONS)),
            ("crossplane", lambda: store.list(CROSSPLANE_PROVIDERS)),
            ("gateway", lambda: store.list(GATEWAYS)),
        ]
    )

    status = PlatformStatus(
        errors=[ComponentError(item=e.item, message=e.message) for e in result.errors],
        notInstalled=[
            item for item, outcome in result.outcomes.items() if outcome is Outcome.NOT_FOUND
        ],
    )
    values = result.values

    if values.get("kubernetes"):
        status.k8sVersion = str(values["kubernetes"])

    if "nodes" in values:
        nodes = values["nodes"] or []
        status.nodeCount = len(nodes)
        status.nodesReady = all(_node_ready(node) for node in nodes)

    if "flux" in values:
        status.fluxBroken = _broken(values["flux"], "Ready")
        status.fluxReady = not status.fluxBroken

    if "crossplane" in values:
        status.crossplaneBroken = _broken(values["crossplane"], "Healthy")
        status.crossplaneReady = not status.crossplaneBroken

    gateways = values.get("gateway") or []
    if gateways:
        status.gatewayReady = True
        addresses = (gateways[0].get("status") or {}).get("addresses") or []
        if addresses and addresses[0].get("value"):
            status.gatewayAddress = str(addresses[0]["value"])

    logger.info(
        "Platform status: %d checks passed, %d not installed, %d failed",
        result.succeeded_count,
        result.not_found_count,
        len(result.errors),
    )
    return status
