"""Request shape checks run before any network interaction.

Only what can be judged locally is checked here; everything else is the
server's call.
"""

import ipaddress
import re
from collections.abc import Sequence
from typing import Any

from .errors import ValidationError

VOLUME_TYPES = ("filesystem", "memory")

_VOLUME_SIZE = re.compile(r"^\d+(\.\d+)?\s*(B|KB|MB|GB|TB)?$", re.IGNORECASE)


def require_identifier(value: Any, what: str) -> str:
    """Require a non-empty string with no surrounding whitespace."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{what} must be a non-empty string")
    if value != value.strip():
        raise ValidationError(f"{what} must not have surrounding whitespace")
    return value


def require_non_negative(value: Any, what: str) -> int:
    """Require an integer that is zero or greater."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{what} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValidationError(f"{what} must not be negative")
    return value


def require_optional_string(value: Any, what: str) -> str:
    """Require a string; empty means "use the server default"."""
    if not isinstance(value, str):
        raise ValidationError(f"{what} must be a string, got {type(value).__name__}")
    return value


def require_flag(value: Any, what: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{what} must be True or False, got {type(value).__name__}")
    return value


def require_strings(values: Any, what: str) -> list[str]:
    """Require an iterable of strings. A bare string is rejected."""
    if isinstance(values, (str, bytes)):
        raise ValidationError(f"{what} must be a list of strings, not a single string")
    try:
        items = list(values)
    except TypeError:
        raise ValidationError(f"{what} must be a list of strings, got {type(values).__name__}") from None
    for item in items:
        if not isinstance(item, str):
            raise ValidationError(f"{what} must contain only strings, got {type(item).__name__}")
    return items


def require_not_empty(items: Sequence[Any], what: str) -> None:
    """Require that a sequence has at least one element."""
    if not items:
        raise ValidationError(f"{what} must not be empty")


def require_cidr(value: Any) -> str:
    """Require a parseable IPv4/IPv6 network such as 10.1.0.0/24."""
    cidr = require_identifier(value, "cidr")
    try:
        ipaddress.ip_network(cidr, strict=False)
    except ValueError as e:
        raise ValidationError(f"cidr {cidr!r} is not a valid network: {e}") from e
    if "/" not in cidr:
        raise ValidationError(f"cidr {cidr!r} needs a prefix length")
    return cidr


def require_volume_size(value: Any) -> str:
    """Require a size like 500MB or 1GB."""
    size = require_identifier(value, "volume size")
    if not _VOLUME_SIZE.match(size):
        raise ValidationError(f"volume size {size!r} must look like 100MB or 1GB")
    return size


def require_volume_type(value: Any) -> str:
    if value not in VOLUME_TYPES:
        raise ValidationError(
            f"volume type must be one of {', '.join(VOLUME_TYPES)}, got {value!r}"
        )
    return value
