"""Expiring per-package cache for merged statistics."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from .types import PackageStatistics
from .utils import utc_now

logger = logging.getLogger("pkgtrend")

DEFAULT_EXPIRATION = timedelta(minutes=15)


class StatisticsCache:
    """Memoize statistics per package id for a fixed freshness window.

    Concurrent misses for the same key may each call the loader; the last one
    to finish replaces the entry. A zero expiration disables caching.

    Args:
        loader: Computes fresh statistics for a package id.
        expiration: How long an entry is served before it is recomputed.
        clock: Returns the current time (aware UTC).
    """

    def __init__(
        self,
        loader: Callable[[str], PackageStatistics],
        expiration: timedelta = DEFAULT_EXPIRATION,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._loader = loader
        self._expiration = expiration
        self._clock = clock
        self._entries: dict[str, tuple[PackageStatistics, datetime]] = {}

    @staticmethod
    def _key(package_id: str) -> str:
        return f"stats_{package_id.lower()}"

    def get(self, package_id: str) -> PackageStatistics:
        """Return cached statistics, loading them on a miss or expiry."""
        key = self._key(package_id)
        cached = self._entries.get(key)
        if cached is not None and self._expiration > timedelta(0):
            data, cached_at = cached
            if self._clock() - cached_at < self._expiration:
                logger.debug("Statistics cache hit for %s", package_id)
                return data

        data = self._loader(package_id)
        self._entries[key] = (data, self._clock())
        return data

    def clear(self) -> None:
        """Drop every cached entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
