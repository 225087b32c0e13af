"""
Create-dialog helpers for the dashboard: defaults, validation, manifests
"""

import math
from typing import Any

import yaml

from shoulders_platform.k8s_utils import condition_status
from shoulders_platform.models import CreateForm, ResourceItem
from shoulders_platform.resources import (
    EVENT_STREAM,
    STATE_STORE,
    WEB_APPLICATION,
    WORKSPACE,
    ResourceKind,
)
from shoulders_platform.validation import parse_list_input


def map_items(items: list[dict[str, Any]]) -> list[ResourceItem]:
    """Summarize raw objects for list views, reading the Synced and Ready conditions"""
    mapped = []
    for item in items:
        metadata = (item or {}).get("metadata") or {}
        mapped.append(
            ResourceItem(
                name=metadata.get("name") or "unknown",
                namespace=metadata.get("namespace") or "",
                createdAt=str(metadata.get("creationTimestamp") or ""),
                synced=condition_status(item or {}, "Synced"),
                ready=condition_status(item or {}, "Ready"),
            )
        )
    return mapped


def default_create_form(kind: ResourceKind, namespace: str = "") -> CreateForm:
    """Empty create-dialog state, prefilled with the selected namespace for namespaced kinds"""
    return CreateForm(namespace=namespace if kind.namespaced else "")


def _to_number(value: str) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_count(value: str, default: int = 1) -> int | float:
    number = _to_number(value)
    if number is None:
        return default
    return int(number) if number.is_integer() else number


def validate_form(kind: ResourceKind, form: CreateForm) -> str | None:
    """Return the first problem with the form, or None when it can be submitted"""
    if not form.name.strip():
        return "Name is required."
    if kind.namespaced and not form.namespace.strip():
        return "Namespace is required for namespaced resources."
    if kind is WEB_APPLICATION:
        webapp = form.webapp
        if not webapp.image.strip() or not webapp.tag.strip() or not webapp.host.strip():
            return "Image, tag, and host are required."
        replicas = _to_number(webapp.replicas)
        if replicas is None or replicas < 1:
            return "Replicas must be a positive number."
    if kind is STATE_STORE:
        if not form.stateStore.postgresEnabled and not form.stateStore.redisEnabled:
            return "Enable PostgreSQL or Redis (or both)."
    return None


def build_manifest_from_form(kind: ResourceKind, form: CreateForm) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": form.name.strip()}
    if kind.namespaced:
        metadata["namespace"] = form.namespace.strip()
    manifest: dict[str, Any] = {
        "apiVersion": kind.api_version,
        "kind": kind.kind,
        "metadata": metadata,
    }

    if kind is WORKSPACE:
        manifest["spec"] = {}
    elif kind is WEB_APPLICATION:
        manifest["spec"] = {
            "image": form.webapp.image.strip(),
            "tag": form.webapp.tag.strip(),
            "replicas": _as_count(form.webapp.replicas),
            "host": form.webapp.host.strip(),
        }
    elif kind is STATE_STORE:
        store = form.stateStore
        manifest["spec"] = {
            "postgresql": {
                "enabled": store.postgresEnabled,
                "storage": store.postgresStorage.strip() or "1Gi",
                "databases": parse_list_input(store.postgresDatabases),
            },
            "redis": {
                "enabled": store.redisEnabled,
                "replicas": _as_count(store.redisReplicas),
            },
        }
    elif kind is EVENT_STREAM:
        topics = [{"name": name} for name in parse_list_input(form.eventStream.topicsText)]
        manifest["spec"] = {"topics": topics} if topics else {}
    return manifest


def manifest_to_yaml(manifest: dict[str, Any]) -> str:
    return yaml.safe_dump(manifest, sort_keys=False, default_flow_style=False, width=120)
