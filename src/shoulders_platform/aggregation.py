"""
Run independent operations and fold their outcomes into one result
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shoulders_platform.exceptions import (
    KubernetesOperationError,
    ResourceNotFoundError,
    error_message,
    is_not_found,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class ItemError:
    item: str
    message: str


@dataclass
class AggregateResult:
    """Combined outcome of a batch of named operations"""

    succeeded_count: int = 0
    not_found_count: int = 0
    errors: list[ItemError] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)
    outcomes: dict[str, Outcome] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def record(self, item: str, outcome: Outcome, value: Any = None, message: str = "") -> None:
        self.outcomes[item] = outcome
        if outcome is Outcome.SUCCEEDED:
            self.succeeded_count += 1
            self.values[item] = value
        elif outcome is Outcome.NOT_FOUND:
            self.not_found_count += 1
        else:
            self.errors.append(ItemError(item=item, message=message))


def run_all(operations: list[tuple[str, Callable[[], Any]]]) -> AggregateResult:
    """Run every operation in order and classify each result.

    An exception never stops the batch: a 404 counts as not found and anything
    else is collected as an error for that item.
    """
    result = AggregateResult()
    for item, operation in operations:
        try:
            value = operation()
        except Exception as e:
            if is_not_found(e):
                logger.debug("%s: not found", item)
                result.record(item, Outcome.NOT_FOUND)
            else:
                logger.warning("%s failed: %s", item, e)
                result.record(item, Outcome.ERROR, message=error_message(e))
            continue
        result.record(item, Outcome.SUCCEEDED, value=value)
    return result


def summarize_delete(result: AggregateResult, name: str) -> str:
    """Interpret an aggregated multi-kind delete.

    Returns the success message, or raises when nothing matched or any item
    failed. Partial success alongside errors is reported as a failure.

    Raises:
        ResourceNotFoundError: When none of the resources existed
        KubernetesOperationError: When any delete failed
    """
    if result.errors:
        details = "; ".join(f"{e.item}: {e.message}" for e in result.errors)
        raise KubernetesOperationError(
            message=(
                f"errors deleting resources for '{name}' "
                f"({result.succeeded_count} deleted): {details}"
            ),
            operation="deleting",
            resource=name,
        )
    if result.succeeded_count == 0:
        raise ResourceNotFoundError(f"infrastructure resource {name} not found", "deleting", name)
    return f"Deleted infrastructure resource {name} ({result.succeeded_count} removed)"

