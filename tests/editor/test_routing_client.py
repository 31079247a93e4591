"""OSRMRoutingClient — request shape and error mapping (mock session)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from race_route.editor.routing_client import OSRMRoutingClient
from race_route.errors import RoutingServiceError
from race_route.route.models import Waypoint

_POINTS = [Waypoint(42.3601, -71.0589), Waypoint(42.3736, -71.1097)]


def _client_returning(payload=None, exc: Exception | None = None) -> tuple[OSRMRoutingClient, MagicMock]:
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        session.get.return_value.json.return_value = payload
    return OSRMRoutingClient("http://osrm.local/", timeout=2.0, session=session), session


def test_format_coordinates_is_lng_lat():
    assert OSRMRoutingClient.format_coordinates(_POINTS) == (
        "-71.058900,42.360100;-71.109700,42.373600"
    )


def test_snap_builds_request_and_converts_geometry():
    payload = {
        "code": "Ok",
        "routes": [
            {"geometry": {"coordinates": [[-71.0589, 42.3601], [-71.08, 42.365], [-71.1097, 42.3736]]}}
        ],
    }
    client, session = _client_returning(payload)

    path = client.snap(_POINTS, "foot")

    assert path == [(42.3601, -71.0589), (42.365, -71.08), (42.3736, -71.1097)]
    url = session.get.call_args.args[0]
    assert url == "http://osrm.local/route/v1/foot/-71.058900,42.360100;-71.109700,42.373600"
    kwargs = session.get.call_args.kwargs
    assert kwargs["params"] == {"overview": "full", "geometries": "geojson"}
    assert kwargs["timeout"] == 2.0


def test_snap_needs_two_points():
    client, session = _client_returning({})
    with pytest.raises(ValueError):
        client.snap(_POINTS[:1], "foot")
    session.get.assert_not_called()


def test_snap_rejects_unknown_profile():
    client, _ = _client_returning({})
    with pytest.raises(ValueError):
        client.snap(_POINTS, "boat")


def test_no_route():
    client, _ = _client_returning({"code": "NoRoute", "message": "Impossible route"})
    with pytest.raises(RoutingServiceError) as excinfo:
        client.snap(_POINTS, "bike")
    assert excinfo.value.code == "NoRoute"
    assert excinfo.value.retryable


def test_ok_without_routes_is_no_route():
    client, _ = _client_returning({"code": "Ok", "routes": []})
    with pytest.raises(RoutingServiceError) as excinfo:
        client.snap(_POINTS, "bike")
    assert excinfo.value.code == "NoRoute"


def test_provider_error_code():
    client, _ = _client_returning({"code": "InvalidQuery", "message": "bad coords"})
    with pytest.raises(RoutingServiceError, match="bad coords") as excinfo:
        client.snap(_POINTS, "foot")
    assert excinfo.value.code == "InvalidQuery"


def test_timeout():
    client, _ = _client_returning(exc=requests.Timeout("slow"))
    with pytest.raises(RoutingServiceError) as excinfo:
        client.snap(_POINTS, "foot")
    assert excinfo.value.code == "Timeout"


def test_connection_error():
    client, _ = _client_returning(exc=requests.ConnectionError("refused"))
    with pytest.raises(RoutingServiceError, match="unavailable"):
        client.snap(_POINTS, "foot")


def test_invalid_json():
    session = MagicMock()
    session.get.return_value.json.side_effect = ValueError("not json")
    client = OSRMRoutingClient("http://osrm.local", session=session)
    with pytest.raises(RoutingServiceError):
        client.snap(_POINTS, "foot")


def test_base_url_from_env(monkeypatch):
    monkeypatch.setenv("ROUTING_BASE_URL", "http://env-osrm:5000/")
    assert OSRMRoutingClient(session=MagicMock()).base_url == "http://env-osrm:5000"
