"""Package registry API client.

Walks the NuGet registration index for every published version and queries
the two search endpoints that report per-version download counts.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any

import requests

from .errors import RegistryUnavailable
from .types import PackageMetadata, PageResult, RegistryTraversal, VersionRecord
from .utils import parse_timestamp
from .versions import normalize_version

logger = logging.getLogger("pkgtrend")

REGISTRY_INDEX_URL = (
    "https://api.nuget.org/v3/registration5-gz-semver2/{package_id}/index.json"
)
PRIMARY_SEARCH_URL = "https://azuresearch-usnc.nuget.org/query"
SECONDARY_SEARCH_URL = "https://api.nuget.org/v3/query"

USER_AGENT = "pkgtrend/0.1"

# Default number of parallel workers for registry page fetches
DEFAULT_MAX_WORKERS = 4

# Registry pages can be slow; seconds per request
DEFAULT_TIMEOUT = 30.0

# Pointer chains deeper than this are treated as unreachable
_MAX_PAGE_DEPTH = 4

# Search results are capped by the endpoint at this many packages
_SEARCH_TAKE = 1000

# Exceptions that indicate API/network errors (not programming bugs)
_API_ERRORS = (
    requests.RequestException,  # Network/connection/HTTP status errors
    ValueError,  # Malformed JSON response
    KeyError,  # Missing expected keys
    TypeError,  # Unexpected data types
)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def create_session(user_agent: str = USER_AGENT) -> requests.Session:
    """Create an HTTP session with the headers every source expects."""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }
    )
    return session


def sort_versions(versions: list[VersionRecord]) -> list[VersionRecord]:
    """Sort newest first by publish date; undated versions go last.

    The sort is stable, so records with equal dates keep their order.
    """
    return sorted(
        versions,
        key=lambda v: (v.published is not None, v.published or _OLDEST),
        reverse=True,
    )


def dedupe_versions(versions: list[VersionRecord]) -> list[VersionRecord]:
    """Drop repeated raw version strings, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for record in versions:
        if record.version in seen:
            continue
        seen.add(record.version)
        unique.append(record)
    return unique


def _extract_records(items: list[Any]) -> list[VersionRecord]:
    """Pull (version, published) pairs out of inline catalog entries."""
    records = []
    for item in items:
        if not isinstance(item, dict):
            continue
        entry = item.get("catalogEntry")
        if not isinstance(entry, dict):
            continue
        version = entry.get("version")
        if not version:
            continue
        records.append(
            VersionRecord(
                version=str(version),
                published=parse_timestamp(entry.get("published")),
            )
        )
    return records


def _has_inline_entries(items: list[Any]) -> bool:
    return any(
        isinstance(item, dict) and isinstance(item.get("catalogEntry"), dict)
        for item in items
    )


class RegistryClient:
    """Client for the registry index and its search endpoints.

    Args:
        session: HTTP session to use. A new one is created if omitted.
        timeout: Per-request timeout in seconds.
        max_workers: Maximum number of top-level pages walked in parallel.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.session = session if session is not None else create_session()
        self.timeout = timeout
        self.max_workers = max_workers

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    # -------------------------------------------------------------------------
    # Registry index traversal
    # -------------------------------------------------------------------------

    def traverse(self, package_id: str) -> RegistryTraversal:
        """Walk the registry index and report every page outcome.

        Raises:
            RegistryUnavailable: If the root index cannot be fetched or parsed.
        """
        url = REGISTRY_INDEX_URL.format(package_id=package_id.lower())
        try:
            index = self._get_json(url)
        except _API_ERRORS as e:
            raise RegistryUnavailable(
                f"Registry index for {package_id} unavailable: {e}"
            ) from e

        if not isinstance(index, dict) or not isinstance(index.get("items"), list):
            raise RegistryUnavailable(f"Registry index for {package_id} is malformed")

        pages = [page for page in index["items"] if isinstance(page, dict)]
        logger.debug("Registry index for %s lists %d pages", package_id, len(pages))

        results: list[PageResult] = []
        if pages:
            workers = max(1, min(self.max_workers, len(pages)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._walk_checked, page, None, 0) for page in pages
                ]
                # Collect in submission order so "first occurrence" is stable
                for future in futures:
                    results.extend(future.result())

        records = [r for result in results if result.ok for r in result.records]
        failures = [result for result in results if not result.ok]
        for failure in failures:
            logger.warning("Skipped registry page %s: %s", failure.url, failure.reason)

        return RegistryTraversal(
            package_id=package_id,
            versions=sort_versions(dedupe_versions(records)),
            failures=failures,
        )

    def fetch_all_versions(self, package_id: str) -> list[VersionRecord]:
        """Collect every known version of a package, newest first."""
        return self.traverse(package_id).versions

    def _walk_checked(
        self, page: dict[str, Any], fetched_from: str | None, depth: int
    ) -> list[PageResult]:
        """Walk a page, turning a malformed payload into a soft failure."""
        try:
            return self._walk_page(page, fetched_from, depth)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            page_id = page.get("@id") or fetched_from or "<inline>"
            logger.debug("Registry page %s is malformed: %s", page_id, e)
            return [PageResult.soft_failure(str(page_id), f"malformed page: {e}")]

    def _walk_page(
        self, page: dict[str, Any], fetched_from: str | None, depth: int
    ) -> list[PageResult]:
        """Extract inline entries, or follow the pointers a page holds."""
        page_id = page.get("@id") or fetched_from or "<inline>"

        if isinstance(page.get("catalogEntry"), dict):
            # A followed leaf carries its own entry
            return [PageResult.success(page_id, _extract_records([page]))]

        items = page.get("items") or []
        if not isinstance(items, list):
            return [PageResult.soft_failure(page_id, "page items are not a list")]

        if _has_inline_entries(items):
            return [PageResult.success(page_id, _extract_records(items))]

        results: list[PageResult] = []
        if items:
            for item in items:
                item_id = item.get("@id") if isinstance(item, dict) else None
                if item_id:
                    results.extend(self._follow(item_id, depth + 1))
        elif page.get("@id") and page["@id"] != fetched_from:
            results.extend(self._follow(page["@id"], depth + 1))
        elif fetched_from is not None:
            # Every fetched page yields at least one result
            results.append(PageResult.soft_failure(page_id, "page has no items"))
        return results

    def _follow(self, url: str, depth: int) -> list[PageResult]:
        if depth > _MAX_PAGE_DEPTH:
            return [PageResult.soft_failure(url, "page nesting too deep")]
        try:
            data = self._get_json(url)
        except _API_ERRORS as e:
            logger.debug("Registry page %s failed: %s", url, e)
            return [PageResult.soft_failure(url, str(e))]
        if not isinstance(data, dict):
            return [PageResult.soft_failure(url, "page payload is not an object")]
        return self._walk_checked(data, url, depth)

    # -------------------------------------------------------------------------
    # Search endpoints (download counts)
    # -------------------------------------------------------------------------

    def _search(self, url: str, query: str, package_id: str) -> dict[str, Any] | None:
        params = {
            "q": query,
            "take": _SEARCH_TAKE,
            "prerelease": "true",
            "semVerLevel": "2.0.0",
        }
        data = self._get_json(url, params=params)
        if not isinstance(data, dict):
            raise ValueError("search payload is not an object")
        wanted = package_id.lower()
        for result in data.get("data") or []:
            if isinstance(result, dict) and str(result.get("id", "")).lower() == wanted:
                return result
        return None

    def fetch_package_metadata(self, package_id: str) -> PackageMetadata | None:
        """Fetch description, totals and per-version downloads from search.

        Returns None if the package is not listed or the endpoint fails.
        """
        try:
            result = self._search(
                PRIMARY_SEARCH_URL, f"packageid:{package_id.lower()}", package_id
            )
            if result is None:
                logger.debug("Search returned no exact match for %s", package_id)
                return None

            versions = [
                (str(v["version"]), int(v.get("downloads") or 0))
                for v in result.get("versions") or []
                if v.get("version")
            ]
            total = result.get("totalDownloads")
            return PackageMetadata(
                package_id=str(result.get("id", package_id)),
                description=result.get("description"),
                authors=list(result.get("authors") or []),
                project_url=result.get("projectUrl"),
                total_downloads=int(total) if total is not None else None,
                versions=versions,
            )
        except _API_ERRORS as e:
            logger.warning("Error fetching metadata for %s: %s", package_id, e)
            return None

    def fetch_version_downloads(
        self, package_id: str, versions: list[str]
    ) -> dict[str, int]:
        """Look up download counts for specific versions in the secondary source.

        Returns a mapping of normalized version key to downloads, restricted to
        the requested versions. Missing versions are simply absent.
        """
        wanted = {normalize_version(v) for v in versions}
        counts: dict[str, int] = {}
        try:
            result = self._search(SECONDARY_SEARCH_URL, package_id.lower(), package_id)
            if result is None:
                return counts
            for entry in result.get("versions") or []:
                key = normalize_version(str(entry.get("version", "")))
                if key in wanted and key not in counts:
                    counts[key] = int(entry.get("downloads") or 0)
        except _API_ERRORS as e:
            logger.warning(
                "Error fetching secondary downloads for %s: %s", package_id, e
            )
        return counts
