"""
Schema validation for platform resource specs
"""

import logging
from typing import Any

import jsonschema

from shoulders_platform.exceptions import ValidationError

logger = logging.getLogger(__name__)

_TOPIC = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "partitions": {"type": "integer", "minimum": 1},
        "replicas": {"type": "integer", "minimum": 1},
        "config": {"type": "object"},
    },
}

SPEC_SCHEMAS: dict[str, dict[str, Any]] = {
    "Workspace": {"type": "object"},
    "WebApplication": {
        "type": "object",
        "required": ["image", "tag", "replicas", "host"],
        "properties": {
            "image": {"type": "string", "minLength": 1},
            "tag": {"type": "string", "minLength": 1},
            "replicas": {"type": "integer", "minimum": 1},
            "host": {"type": "string", "minLength": 1},
        },
    },
    "StateStore": {
        "type": "object",
        "properties": {
            "postgresql": {
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean"},
                    "storage": {"type": "string", "pattern": "^[0-9]+(Mi|Gi|Ti)$"},
                    "databases": {"type": "array", "items": {"type": "string"}},
                },
            },
            "redis": {
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean"},
                    "replicas": {"type": "integer", "minimum": 1},
                },
            },
        },
    },
    "EventStream": {
        "type": "object",
        "properties": {"topics": {"type": "array", "items": _TOPIC}},
    },
}


def validate_spec(manifest: dict[str, Any]) -> None:
    """
    Validate the spec of a platform resource manifest

    Manifests of kinds outside the platform group are not checked.

    Args:
        manifest: The complete resource body

    Raises:
        ValidationError: If the spec does not match the kind's schema
    """
    kind = manifest.get("kind")
    schema = SPEC_SCHEMAS.get(str(kind))
    if schema is None or not str(manifest.get("apiVersion", "")).startswith("shoulders.io/"):
        return

    name = (manifest.get("metadata") or {}).get("name", "unknown")
    try:
        jsonschema.validate(instance=manifest.get("spec") or {}, schema=schema)
    except jsonschema.ValidationError as e:
        error_path = " -> ".join(str(p) for p in e.absolute_path) if e.absolute_path else "spec"
        error_msg = f"{kind} '{name}' is invalid at {error_path}: {e.message}"
        logger.warning("Schema validation failed: %s", error_msg)
        raise ValidationError(error_msg, "validating", f"{kind}/{name}") from e

    logger.debug("%s %s passed schema validation", kind, name)
