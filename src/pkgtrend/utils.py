"""Utility functions for pkgtrend."""

import re
from datetime import datetime, timezone
from typing import Any

# -----------------------------------------------------------------------------
# Identifier Validation Constants
# -----------------------------------------------------------------------------

# NuGet package id pattern
# - Must start and end with alphanumeric
# - Can contain alphanumeric, hyphens, underscores, and periods
# - Max 100 characters
_PACKAGE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9._-]*[a-zA-Z0-9])?$")
_MAX_PACKAGE_ID_LENGTH = 100

# GitHub "owner/name" repository pattern
_REPOSITORY_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,39}/[A-Za-z0-9._-]{1,100}$")


def validate_package_id(package_id: str) -> tuple[bool, str]:
    """Validate that a package id follows registry naming conventions.

    Args:
        package_id: Package id to validate.

    Returns:
        Tuple of (is_valid, error_message). If valid, error_message is empty.
    """
    if not package_id:
        return False, "Package id cannot be empty"

    if len(package_id) > _MAX_PACKAGE_ID_LENGTH:
        return False, f"Package id exceeds {_MAX_PACKAGE_ID_LENGTH} characters"

    if not _PACKAGE_ID_PATTERN.match(package_id):
        return False, (
            "Package id must start and end with alphanumeric characters "
            "and contain only letters, numbers, hyphens, underscores, or periods"
        )

    return True, ""


def validate_repository(repository: str) -> tuple[bool, str]:
    """Validate an ``owner/name`` repository reference."""
    if not repository:
        return False, "Repository cannot be empty"
    if not _REPOSITORY_PATTERN.match(repository):
        return False, "Repository must look like 'owner/name'"
    return True, ""


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken to be UTC. Returns None for empty,
    non-string or unparseable values.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC (naive means UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
