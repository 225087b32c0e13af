"""
Canned responses served when SHOULDERS_MOCK=1
"""

from shoulders_platform.models import (
    ContextsResponse,
    NamespaceItem,
    NamespaceListResponse,
    ResourceCounts,
    ResourceGroups,
    ResourceItem,
    SummaryResponse,
)

MOCK_CONTEXT = "kind-shoulders"

MOCK_CONTEXTS = ContextsResponse(current=MOCK_CONTEXT, contexts=[MOCK_CONTEXT, "prod-cluster"])

MOCK_NAMESPACES = NamespaceListResponse(
    items=[NamespaceItem(name="team-a"), NamespaceItem(name="team-b")]
)


def mock_summary() -> SummaryResponse:
    resources = ResourceGroups(
        workspaces=[ResourceItem(name="team-a"), ResourceItem(name="team-b")],
        webApplications=[
            ResourceItem(name="web-a", namespace="team-a"),
            ResourceItem(name="web-b", namespace="team-a"),
            ResourceItem(name="web-c", namespace="team-b"),
        ],
        stateStores=[ResourceItem(name="state-a", namespace="team-a")],
        eventStreams=[ResourceItem(name="events-a", namespace="team-a")],
    )
    return SummaryResponse(
        context=MOCK_CONTEXT,
        cluster=MOCK_CONTEXT,
        server="https://127.0.0.1:6443",
        counts=ResourceCounts(workspaces=2, webApplications=3, stateStores=1, eventStreams=1),
        resources=resources,
        warnings=[],
    )
