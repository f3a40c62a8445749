"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import MagicMock

import pytest
import requests

from filmtracker.tmdb import TMDbClient

BASE = "https://tmdb.test/3"


class FakeResponse:
    def __init__(self, payload=None, status_code=200, body_is_json=True):
        self.payload = payload if payload is not None else {}
        self.status_code = status_code
        self.body_is_json = body_is_json

    def json(self):
        if not self.body_is_json:
            raise requests.JSONDecodeError("Expecting value", "<html>", 0)
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """
    Routes GETs by path. A route is a payload, a FakeResponse, a list of
    those (consumed in order) or a callable taking the query params.
    """

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        path = url[len(BASE):]
        self.calls.append((path, dict(params or {})))
        route = self.routes.get(path, {"results": []})
        if isinstance(route, list):
            route = route.pop(0)
        if callable(route):
            route = route(params)
        return route if isinstance(route, FakeResponse) else FakeResponse(route)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def tmdb_client(fake_session):
    return TMDbClient(api_key="test-key", base=BASE, language="en-US", session=fake_session)


@pytest.fixture
def mock_conn():
    """psycopg2-like connection; the cursor is conn.cursor().__enter__()."""
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    return conn, cur


@pytest.fixture
def matrix_details():
    return {
        "id": 603,
        "title": "The Matrix",
        "original_title": "The Matrix",
        "release_date": "1999-03-30",
        "overview": "A hacker learns the truth about reality.",
        "poster_path": "/matrix.jpg",
        "runtime": 136,
        "genres": [{"id": 28, "name": "Action"}],
    }


@pytest.fixture
def matrix_credits():
    return {
        "id": 603,
        "crew": [
            {"name": "Bill Pope", "job": "Director of Photography"},
            {"name": "Lana Wachowski", "job": "Director"},
            {"name": "Lilly Wachowski", "job": "Director"},
        ],
    }


@pytest.fixture
def collection_csv(tmp_path):
    path = tmp_path / "movies.csv"
    path.write_text(
        "#,Yr,Title,Dir.,Notes,Completed\n"
        "1,1999,The Matrix,Lana Wachowski,Watched with calen,3.15.23\n"
        "2,2019,Parasite,Bong Joon Ho,,12.1.2022\n"
        "3,,,,empty row,\n"
        "4,1972,The Godfather,,rewatch,\n",
        encoding="utf-8",
    )
    return path
