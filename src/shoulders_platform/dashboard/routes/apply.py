"""
YAML apply route
"""

import asyncio
import logging
from typing import Any

import yaml
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from shoulders_platform.apply import apply_resource
from shoulders_platform.dashboard.session import KubeSession, get_session
from shoulders_platform.exceptions import convert_to_http_exception, error_message
from shoulders_platform.k8s_utils import DynamicObjectStore
from shoulders_platform.models import AppliedObject, ApplyRequest, ApplyResponse
from shoulders_platform.resources import CLUSTER_SCOPED_KINDS
from shoulders_platform.schemas import validate_spec

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["apply"])

MISSING_FIELDS = "Manifest is missing apiVersion, kind, or metadata.name."


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ApplyResponse(errors=[message]).model_dump()
    )


def _is_complete(document: Any) -> bool:
    return (
        isinstance(document, dict)
        and bool(document.get("apiVersion"))
        and bool(document.get("kind"))
        and isinstance(document.get("metadata"), dict)
        and bool(document["metadata"].get("name"))
    )


def _default_namespace(document: dict[str, Any], namespace: str | None) -> None:
    metadata = document["metadata"]
    if not metadata.get("namespace") and document["kind"] not in CLUSTER_SCOPED_KINDS:
        metadata["namespace"] = namespace or "default"


def _apply_document(store: DynamicObjectStore, document: dict[str, Any]) -> AppliedObject:
    ref = store.ref_for(document)
    validate_spec(document)
    outcome = apply_resource(store, ref, document)
    logger.info(
        "%s %s/%s %s", document["kind"], ref.namespace or "-", ref.name, outcome.action.value
    )
    return AppliedObject(
        kind=document["kind"],
        name=document["metadata"]["name"],
        namespace=document["metadata"].get("namespace") or "",
        action=outcome.action.value,
    )


@router.post("/apply", response_model=None)
async def apply_yaml(
    request: ApplyRequest, session: KubeSession = Depends(get_session)
) -> ApplyResponse | JSONResponse:
    """Apply every document of a YAML stream; one failing document never stops the rest"""
    if not request.yaml:
        return _error_response(400, "Missing yaml payload.")

    try:
        documents = [doc for doc in yaml.safe_load_all(request.yaml) if doc]
    except yaml.YAMLError as e:
        return _error_response(400, f"YAML parse failed: {e}")

    response = ApplyResponse()

    if session.mock:
        for document in documents:
            if not _is_complete(document):
                response.errors.append(MISSING_FIELDS)
                continue
            _default_namespace(document, request.namespace)
            response.applied.append(
                AppliedObject(
                    kind=document["kind"],
                    name=document["metadata"]["name"],
                    namespace=document["metadata"].get("namespace") or "",
                )
            )
        return response

    try:
        store = await asyncio.to_thread(session.dynamic_store)
    except Exception as e:
        status = convert_to_http_exception(e).status_code
        return _error_response(status, f"kubeconfig: {error_message(e)}")

    for document in documents:
        if not _is_complete(document):
            response.errors.append(MISSING_FIELDS)
            continue
        _default_namespace(document, request.namespace)
        try:
            applied = await asyncio.to_thread(_apply_document, store, document)
        except Exception as e:
            logger.warning(
                "Apply failed for %s/%s: %s",
                document["kind"],
                document["metadata"]["name"],
                error_message(e),
            )
            response.errors.append(
                f"{document['kind']}/{document['metadata']['name']}: {error_message(e)}"
            )
            continue
        response.applied.append(applied)

    return response
