"""
Summary, per-kind listing, create-dialog defaults and form creation routes
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from shoulders_platform.apply import apply_resource
from shoulders_platform.dashboard.mock_data import mock_summary
from shoulders_platform.dashboard.session import KubeSession, get_session
from shoulders_platform.exceptions import (
    ValidationError,
    convert_to_http_exception,
    error_message,
    log_operation_start,
    log_operation_success,
)
from shoulders_platform.forms import (
    build_manifest_from_form,
    default_create_form,
    manifest_to_yaml,
    map_items,
    validate_form,
)
from shoulders_platform.models import (
    CreateDefaultsResponse,
    CreateForm,
    CreateResponse,
    ResourceCounts,
    ResourceGroups,
    ResourceListResponse,
    SummaryResponse,
)
from shoulders_platform.resources import RESOURCE_KINDS, WORKSPACE, ResourceKind, resolve_kind
from shoulders_platform.schemas import validate_spec
from shoulders_platform.validation import validate_k8s_name

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["resources"])

# ResourceGroups/ResourceCounts field for each kind
_GROUP_FIELDS = {
    "workspaces": "workspaces",
    "webapplications": "webApplications",
    "statestores": "stateStores",
    "eventstreams": "eventStreams",
}


def _kind_or_400(kind: str) -> ResourceKind:
    resource_kind = resolve_kind(kind)
    if resource_kind is None:
        raise HTTPException(status_code=400, detail=f"Unknown kind: {kind.lower()}")
    return resource_kind


def _namespace_items(session: KubeSession) -> list[dict[str, Any]]:
    result = session.clients().core.list_namespace()
    items = []
    for ns in result.items:
        created = ns.metadata.creation_timestamp
        items.append(
            {
                "metadata": {
                    "name": ns.metadata.name,
                    "creationTimestamp": created.isoformat() if created else "",
                }
            }
        )
    return items


@router.get("/summary")
async def get_summary(session: KubeSession = Depends(get_session)) -> SummaryResponse:
    """Counts and references for every platform kind, with per-kind warnings"""
    if session.mock:
        return mock_summary()

    warnings: list[str] = []
    try:
        context = session.current_context()
        cluster = session.cluster()
        store = session.clients().store
    except Exception as e:
        warnings.append(f"kubeconfig: {error_message(e)}")
        return SummaryResponse(warnings=warnings)

    results = await asyncio.gather(
        *(asyncio.to_thread(store.list, kind.ref()) for kind in RESOURCE_KINDS),
        return_exceptions=True,
    )

    groups = ResourceGroups()
    counts = ResourceCounts()
    for kind, result in zip(RESOURCE_KINDS, results, strict=True):
        items: list[dict[str, Any]] = []
        if isinstance(result, BaseException):
            warnings.append(f"{kind.id}: {error_message(result)}")
            if kind is WORKSPACE:
                try:
                    items = await asyncio.to_thread(_namespace_items, session)
                except Exception as e:
                    warnings.append(f"namespaces: {error_message(e)}")
        else:
            items = result
        refs = map_items(items)
        field = _GROUP_FIELDS[kind.id]
        setattr(groups, field, refs)
        setattr(counts, field, len(refs))

    return SummaryResponse(
        context=context,
        cluster=cluster["name"] if cluster else None,
        server=cluster["server"] if cluster else None,
        counts=counts,
        resources=groups,
        warnings=warnings,
    )


@router.get("/resources/{kind}")
async def list_resources(
    kind: str, session: KubeSession = Depends(get_session)
) -> ResourceListResponse:
    """List one platform kind across all namespaces"""
    resource_kind = _kind_or_400(kind)
    if session.mock:
        return ResourceListResponse(items=[])
    try:
        items = await asyncio.to_thread(session.clients().store.list, resource_kind.ref())
    except Exception as e:
        raise convert_to_http_exception(e) from e
    return ResourceListResponse(items=map_items(items))


@router.get("/resources/{kind}/defaults")
async def get_create_defaults(kind: str, namespace: str = "") -> CreateDefaultsResponse:
    """Initial create-dialog form and target collection path for one kind"""
    resource_kind = _kind_or_400(kind)
    if namespace:
        try:
            validate_k8s_name(namespace, "namespace")
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=e.message) from e
    return CreateDefaultsResponse(
        kind=resource_kind.kind,
        namespaced=resource_kind.namespaced,
        createPath=resource_kind.create_path(namespace or None),
        form=default_create_form(resource_kind, namespace),
    )


@router.post("/resources/{kind}")
async def create_resource(
    kind: str, form: CreateForm, session: KubeSession = Depends(get_session)
) -> CreateResponse:
    """Create or update a platform resource from the create-dialog form"""
    resource_kind = _kind_or_400(kind)
    problem = validate_form(resource_kind, form)
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    manifest = build_manifest_from_form(resource_kind, form)
    try:
        validate_spec(manifest)
        ref = resource_kind.ref(manifest["metadata"]["name"], manifest["metadata"].get("namespace"))
        if session.mock:
            return CreateResponse(
                action="created", manifest=manifest, yaml=manifest_to_yaml(manifest)
            )

        resource_id = f"{ref.namespace}/{ref.name}" if ref.namespace else str(ref.name)
        log_operation_start("apply", resource_kind.kind, resource_id)
        outcome = await asyncio.to_thread(
            apply_resource, session.clients().store, ref, manifest
        )
        log_operation_success(outcome.action.value, resource_kind.kind, resource_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except Exception as e:
        raise convert_to_http_exception(e) from e

    return CreateResponse(
        action=outcome.action.value, manifest=manifest, yaml=manifest_to_yaml(manifest)
    )
