"""
Error handling utilities and custom exceptions for the Shoulders platform tooling
"""

import functools
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

from fastapi import HTTPException
from kubernetes.client.rest import ApiException

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """User-facing error categories"""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXTERNAL = "external"
    ENVIRONMENT = "environment"


class PlatformError(Exception):
    """Base exception for platform operations"""

    kind = ErrorKind.EXTERNAL

    def __init__(self, message: str, operation: str = "", resource: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.resource = resource


class ValidationError(PlatformError):
    """Caller-supplied input failed validation; never reaches the cluster"""

    kind = ErrorKind.INVALID_INPUT


class KubernetesOperationError(PlatformError):
    """Exception for Kubernetes API operation failures"""

    def __init__(
        self,
        message: str,
        operation: str,
        resource: str,
        api_exception: ApiException | None = None,
    ):
        super().__init__(message, operation, resource)
        self.api_exception = api_exception
        self.status_code = api_exception.status if api_exception else None

    @property  # type: ignore[override]
    def kind(self) -> ErrorKind:
        if self.status_code == 404:
            return ErrorKind.NOT_FOUND
        if self.status_code == 409:
            return ErrorKind.CONFLICT
        return ErrorKind.EXTERNAL


class ResourceNotFoundError(PlatformError):
    """None of the resources an operation targets exist"""

    kind = ErrorKind.NOT_FOUND


class HttpError(PlatformError):
    """Non-2xx response from the log or trace backend"""

    def __init__(self, message: str, status: int, reason: str) -> None:
        super().__init__(message, "querying", "observability backend")
        self.status = status
        self.reason = reason


class PlatformEnvironmentError(PlatformError):
    """The local environment (tunnel, kubeconfig) could not be used"""

    kind = ErrorKind.ENVIRONMENT
    hint = "check your local environment"


class PortForwardError(PlatformEnvironmentError):
    """kubectl port-forward could not be established"""

    hint = "ensure kubectl is installed and the cluster is reachable"


class KubeconfigError(PlatformEnvironmentError):
    """The kubeconfig file or context lookup failed"""

    hint = "check KUBECONFIG and the contexts it defines"


def _api_status(error: BaseException) -> int | None:
    if isinstance(error, KubernetesOperationError):
        return error.status_code
    if isinstance(error, ApiException):
        return error.status
    return None


def is_not_found(error: BaseException) -> bool:
    """True when the error is a Kubernetes 404"""
    return _api_status(error) == 404


def api_error_message(error: ApiException) -> str:
    """Extract the Status message from an ApiException body, falling back to the reason"""
    if error.body:
        try:
            body = json.loads(error.body)
        except (TypeError, ValueError):
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return str(error.reason or "Kubernetes API error")


def describe_api_failure(error: ApiException) -> str:
    if error.status == 404:
        return "does not exist"
    if error.status == 409:
        return f"already modified: {api_error_message(error)}"
    return api_error_message(error)


def error_message(error: BaseException) -> str:
    """Plain message for an error, without the category prefix"""
    if isinstance(error, PlatformError):
        return error.message
    if isinstance(error, ApiException):
        return api_error_message(error)
    return str(error) or type(error).__name__


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception raised by an operation to its user-facing category"""
    if isinstance(error, PlatformError):
        return error.kind
    status = _api_status(error)
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 409:
        return ErrorKind.CONFLICT
    return ErrorKind.EXTERNAL


def format_error(error: BaseException) -> str:
    """Render an error as a single line prefixed with its category"""
    kind = classify_error(error)
    if isinstance(error, PlatformError):
        message = error.message
    elif isinstance(error, ApiException):
        message = describe_api_failure(error)
    else:
        message = str(error) or type(error).__name__
    if isinstance(error, PlatformEnvironmentError):
        message = f"{message}. Hint: {error.hint}."
    return f"[{kind.value}] {message}"


def _resource_id(kwargs: dict[str, Any]) -> str:
    name = kwargs.get("name")
    namespace = kwargs.get("namespace")
    if name and namespace:
        return f"{namespace}/{name}"
    return str(name or namespace or "*")


def handle_kubernetes_errors(operation: str, resource_type: str) -> Any:
    """
    Decorator to handle Kubernetes API exceptions with proper logging and error conversion.

    Platform errors raised by the wrapped function (validation, environment) pass
    through untouched; ApiExceptions become KubernetesOperationError naming the
    resource from the ``name``/``namespace`` keyword arguments.

    Args:
        operation: Description of the operation (e.g., "deleting")
        resource_type: Kind of resource (e.g., "WebApplication")
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except PlatformError:
                raise
            except ApiException as e:
                resource_id = _resource_id(kwargs)
                error_msg = (
                    f"Kubernetes API error while {operation} {resource_type} '{resource_id}'"
                )

                if e.status == 404:
                    logger.info("%s: Resource not found (404)", error_msg)
                elif e.status in (400, 401, 403, 409):
                    logger.warning("%s: Client error (%s): %s", error_msg, e.status, e.reason)
                else:
                    logger.error("%s: Server error (%s): %s", error_msg, e.status, e.reason)
                    if e.body:
                        logger.error("Error details: %s", e.body)

                if e.status in (404, 409):
                    message = f"{resource_type} '{resource_id}' {describe_api_failure(e)}"
                else:
                    message = (
                        f"Failed {operation} {resource_type} '{resource_id}': "
                        f"{describe_api_failure(e)}"
                    )

                raise KubernetesOperationError(
                    message=message,
                    operation=operation,
                    resource=f"{resource_type}:{resource_id}",
                    api_exception=e,
                ) from e

        return wrapper  # type: ignore[return-value]

    return decorator


_HTTP_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.EXTERNAL: 502,
    ErrorKind.ENVIRONMENT: 503,
}


def convert_to_http_exception(error: Exception, default_status_code: int = 500) -> HTTPException:
    """
    Convert domain exceptions to appropriate HTTP exceptions for FastAPI.

    Args:
        error: The exception to convert
        default_status_code: Status code for errors outside the platform hierarchy
    """
    if isinstance(error, HTTPException):
        return error

    if isinstance(error, (PlatformError, ApiException)):
        kind = classify_error(error)
        return HTTPException(status_code=_HTTP_STATUS[kind], detail=format_error(error))

    logger.error("Unhandled exception: %s", error, exc_info=True)
    return HTTPException(status_code=default_status_code, detail="Internal server error occurred")


def log_operation_start(operation: str, resource_type: str, resource_id: str) -> None:
    """Log the start of a significant operation"""
    logger.info("Starting %s for %s '%s'", operation, resource_type, resource_id)


def log_operation_success(operation: str, resource_type: str, resource_id: str) -> None:
    """Log successful completion of an operation"""
    logger.info("Successfully completed %s for %s '%s'", operation, resource_type, resource_id)
