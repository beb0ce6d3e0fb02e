"""GitHub stargazer roster client."""

import logging
from datetime import datetime
from typing import Any

import requests

from .errors import RosterUnavailable
from .utils import parse_timestamp

logger = logging.getLogger("pkgtrend")

GITHUB_API_BASE = "https://api.github.com"

# Media type that makes the stargazers endpoint include starred_at
STAR_MEDIA_TYPE = "application/vnd.github.star+json"

DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 15.0

# Safety stop; 4000 pages of 100 covers any realistic repository
_MAX_PAGES = 4000


class GitHubRosterClient:
    """Fetch the complete list of accounts currently starring a repository.

    Args:
        session: HTTP session to use. A new one is created if omitted.
        token: Optional GitHub token sent as a bearer credential.
        timeout: Per-page timeout in seconds.
        page_size: Entries requested per page.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.page_size = page_size
        self.headers = {
            "Accept": STAR_MEDIA_TYPE,
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "pkgtrend-stars-tracker",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def _get_page(self, repository: str, page: int) -> list[Any]:
        url = f"{GITHUB_API_BASE}/repos/{repository}/stargazers"
        params = {"per_page": self.page_size, "page": page}
        try:
            response = self.session.get(
                url, params=params, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise RosterUnavailable(
                f"Stargazers page {page} for {repository} unavailable: {e}"
            ) from e
        if not isinstance(data, list):
            raise RosterUnavailable(
                f"Stargazers page {page} for {repository} is not a list"
            )
        return data

    def fetch_roster(self, repository: str) -> dict[str, datetime | None]:
        """Return ``{username: starred_at}`` for every current stargazer.

        Pages are requested until one comes back empty. Any failed page
        aborts the fetch, since an incomplete roster would look like
        departures.

        Raises:
            RosterUnavailable: If any page cannot be fetched or parsed.
        """
        roster: dict[str, datetime | None] = {}
        for page in range(1, _MAX_PAGES + 1):
            entries = self._get_page(repository, page)
            if not entries:
                break
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                # star+json wraps the account in "user"; plain json is the account
                user = entry.get("user") if "user" in entry else entry
                login = user.get("login") if isinstance(user, dict) else None
                if not login:
                    continue
                roster[login] = parse_timestamp(entry.get("starred_at"))
            logger.debug("Stargazers page %d: %d entries", page, len(entries))
        else:
            raise RosterUnavailable(
                f"Stargazers for {repository} exceeded {_MAX_PAGES} pages"
            )

        logger.info("Fetched %d stargazers for %s", len(roster), repository)
        return roster
