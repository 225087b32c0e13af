"""
Idempotent create-or-replace of a single resource
"""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from shoulders_platform.exceptions import ValidationError, is_not_found
from shoulders_platform.k8s_utils import ResourceRef, ResourceStore

logger = logging.getLogger(__name__)


class ApplyAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class ApplyOutcome:
    """Result of apply_resource: the action taken and the object the server returned"""

    action: ApplyAction
    body: dict[str, Any]


def apply_resource(store: ResourceStore, ref: ResourceRef, manifest: dict[str, Any]) -> ApplyOutcome:
    """Create the resource if absent, otherwise replace it in place.

    The existing object's ``metadata.resourceVersion`` is copied into the
    desired manifest so the replace is rejected (409) if someone else wrote the
    object in between. Exactly one mutating call is made; errors other than a
    404 on the initial fetch propagate unchanged and nothing is retried.

    Args:
        store: Resource store used for get/create/replace
        ref: The resource to apply; ``ref.name`` must be set
        manifest: Desired object. It is not modified.

    Raises:
        ValidationError: If the ref does not name a single resource
        ApiException: Any Kubernetes API failure other than the 404 on fetch
    """
    if not ref.name:
        raise ValidationError("apply requires a resource name")

    desired = copy.deepcopy(manifest)
    try:
        existing = store.get(ref)
    except Exception as e:
        if not is_not_found(e):
            raise
        logger.debug("%s not found, creating", ref)
        created = store.create(ref, desired)
        return ApplyOutcome(action=ApplyAction.CREATED, body=created)

    resource_version = (existing.get("metadata") or {}).get("resourceVersion")
    if resource_version:
        desired.setdefault("metadata", {})["resourceVersion"] = resource_version
    logger.debug("%s exists at resourceVersion %s, replacing", ref, resource_version)
    replaced = store.replace(ref, desired)
    return ApplyOutcome(action=ApplyAction.UPDATED, body=replaced)
