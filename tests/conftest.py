"""Shared fixtures and HTTP fakes for pkgtrend tests."""

from datetime import datetime, timezone

import pytest
import requests

from pkgtrend.config import TrackerConfig
from pkgtrend.db import get_db_connection, init_db


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Routes GET requests by URL to canned payloads.

    A route value may be a payload, a FakeResponse, a requests exception to
    raise, or a callable taking the query params and returning any of those.
    Unknown URLs answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.headers = {}

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        if url not in self.routes:
            return FakeResponse(status_code=404)
        route = self.routes[url]
        if callable(route):
            route = route(params or {})
        if isinstance(route, requests.RequestException):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(route)

    def urls(self):
        return [url for url, _ in self.calls]


class FixedClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def catalog_item(version, published=None):
    entry = {"version": version}
    if published is not None:
        entry["published"] = published
    return {"@id": f"https://example.test/leaf/{version}.json", "catalogEntry": entry}


@pytest.fixture
def temp_db(tmp_path):
    """Path to a fresh database file."""
    return str(tmp_path / "pkgtrend.db")


@pytest.fixture
def db_conn(temp_db):
    """Create an initialized database connection."""
    conn = get_db_connection(temp_db)
    init_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FixedClock(utc(2024, 6, 15, 12, 0, 0))


@pytest.fixture
def config(temp_db):
    return TrackerConfig(
        package_id="Sample.Package",
        repository="octo/sample",
        database=temp_db,
    )
