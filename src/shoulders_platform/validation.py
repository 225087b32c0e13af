"""
Input validation and normalization applied before any Kubernetes call
"""

import re

from shoulders_platform.exceptions import ValidationError

DNS1123_LABEL = re.compile(r"[a-z0-9]([a-z0-9-]*[a-z0-9])?")
MAX_LABEL_LENGTH = 63
DEFAULT_TAG = "latest"
DEFAULT_TRUNCATE_LENGTH = 12000


def validate_k8s_name(value: str | None, label: str) -> str:
    """Validate a DNS-1123 label and return it unchanged.

    Args:
        value: The name supplied by the caller
        label: Human readable field name used in error messages

    Raises:
        ValidationError: If the value is empty, too long, or not a DNS-1123 label
    """
    if not value or not value.strip():
        raise ValidationError(f"{label} is required")
    if len(value) > MAX_LABEL_LENGTH:
        raise ValidationError(f"{label} must be {MAX_LABEL_LENGTH} characters or fewer")
    if not DNS1123_LABEL.fullmatch(value):
        raise ValidationError(
            f"{label} must be a DNS-1123 label (lowercase alphanumeric and '-')"
        )
    return value


def validate_image(value: str | None) -> str:
    if not value or not value.strip():
        raise ValidationError("image is required")
    return value


def parse_image_tag(image: str, override_tag: str | None = None) -> tuple[str, str]:
    """Split an image reference into (image, tag).

    An explicit override tag wins; otherwise a single ``:`` separates the tag;
    anything else keeps the reference as-is with the ``latest`` tag.
    """
    validate_image(image)
    if override_tag and override_tag.strip():
        return image, override_tag
    parts = image.split(":")
    if len(parts) == 2:
        return parts[0], parts[1]
    return image, DEFAULT_TAG


def parse_list_input(value: str | None) -> list[str]:
    """Split human-entered multi-value text on commas and newlines.

    >>> parse_list_input("a,b\\n c")
    ['a', 'b', 'c']
    """
    if not value:
        return []
    return [entry.strip() for entry in re.split(r"[\n,]+", value) if entry.strip()]


def normalize_names(values: list[str] | None) -> list[str]:
    """Trim and drop blank entries from an already-split list"""
    return [value.strip() for value in values or [] if value and value.strip()]


def truncate(value: str, max_length: int = DEFAULT_TRUNCATE_LENGTH) -> str:
    if len(value) <= max_length:
        return value
    return f"{value[:max_length]}\n...[truncated {len(value) - max_length} chars]"


def clamp(value: int | None, default: int, minimum: int, maximum: int) -> int:
    if value is None:
        return default
    return max(minimum, min(int(value), maximum))
