"""
Kube context and namespace routes
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from shoulders_platform.dashboard.mock_data import MOCK_CONTEXTS, MOCK_NAMESPACES
from shoulders_platform.dashboard.session import KubeSession, get_session
from shoulders_platform.exceptions import convert_to_http_exception
from shoulders_platform.models import (
    ContextSelectRequest,
    ContextSelectResponse,
    ContextsResponse,
    NamespaceItem,
    NamespaceListResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["contexts"])


@router.get("/contexts")
async def list_contexts(session: KubeSession = Depends(get_session)) -> ContextsResponse:
    """List kubeconfig contexts and the active one"""
    if session.mock:
        return MOCK_CONTEXTS
    try:
        return ContextsResponse(current=session.current_context(), contexts=session.contexts())
    except Exception as e:
        raise convert_to_http_exception(e) from e


@router.post("/context")
async def select_context(
    request: ContextSelectRequest, session: KubeSession = Depends(get_session)
) -> ContextSelectResponse:
    """Switch the dashboard to another context"""
    if not request.context:
        raise HTTPException(status_code=400, detail="Missing context name.")
    if session.mock:
        return ContextSelectResponse(current=request.context)
    try:
        session.select_context(request.context)
    except Exception as e:
        raise convert_to_http_exception(e) from e
    return ContextSelectResponse(current=request.context)


@router.get("/namespaces")
async def list_namespaces(session: KubeSession = Depends(get_session)) -> NamespaceListResponse:
    """List namespace names"""
    if session.mock:
        return MOCK_NAMESPACES
    try:
        result = await asyncio.to_thread(session.clients().core.list_namespace)
    except Exception as e:
        raise convert_to_http_exception(e) from e
    return NamespaceListResponse(
        items=[NamespaceItem(name=(ns.metadata.name if ns.metadata else "") or "") for ns in result.items]
    )
