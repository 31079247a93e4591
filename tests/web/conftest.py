"""Shared fixtures for web tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from race_route.web.app import app


@pytest.fixture
def client():
    """FastAPI test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(tmp_path) -> str:
    """Path to a fresh SQLite database, passed to endpoints as ``?db=``."""
    return str(tmp_path / "api.db")


def make_route_payload(
    name: str = "Charles River Loop",
    n: int = 4,
    step: float = 0.01,
    **overrides,
) -> dict:
    """Build a POST /api/routes body with *n* waypoints along a parallel."""
    payload = {
        "name": name,
        "description": "Both banks and back",
        "city": "Boston, MA",
        "country": "USA",
        "discipline_type": "run",
        "difficulty": "beginner",
        "waypoints": [[42.36, -71.10 + i * step] for i in range(n)],
    }
    payload.update(overrides)
    return payload


def create_route(client, db: str, **kwargs) -> dict:
    resp = client.post("/api/routes", params={"db": db}, json=make_route_payload(**kwargs))
    assert resp.status_code == 200, resp.text
    return resp.json()
