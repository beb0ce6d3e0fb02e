"""Version string normalization.

The normalized form is the join key used to match the same release across
differently formatted version strings reported by independent sources.
"""

import re

# major.minor[.build[.revision]], non-negative integers only
_NUMERIC_CORE = re.compile(r"^\d+(?:\.\d+){1,3}$")


def normalize_version(raw: str) -> str:
    """Canonicalize a version string into a comparable key.

    Build metadata (``+...``) is dropped, the numeric core is re-emitted with
    only the segments that are present (so ``1.2`` and ``1.2.0`` stay
    distinct while ``01.2.0`` becomes ``1.2.0``), and any prerelease label is
    re-appended. Strings whose numeric core does not parse come back
    lowercased and trimmed.

    Examples:
        >>> normalize_version("1.2.0.0+sha.abc")
        '1.2.0.0'
        >>> normalize_version("1.02-Beta.1")
        '1.2-beta.1'
    """
    if not raw or not raw.strip():
        return ""

    base = raw.split("+", 1)[0].strip().lower()
    core, sep, prerelease = base.partition("-")

    if not _NUMERIC_CORE.match(core):
        return base

    normalized = ".".join(str(int(segment)) for segment in core.split("."))
    if sep and prerelease:
        return f"{normalized}-{prerelease}"
    return normalized


def is_prerelease(version: str) -> bool:
    """Return True if the version carries a prerelease label."""
    return "-" in version.split("+", 1)[0]
