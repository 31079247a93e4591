"""OSRM routing client used for road-snapping.

Sole responsibility: talk to an OSRM-compatible ``/route`` endpoint over
HTTP and return the road-following polyline as ``(lat, lng)`` waypoints.
OSRM itself speaks ``lon,lat``; the conversion happens only here.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

import requests

from race_route.config import DEFAULT_ROUTING_URL
from race_route.errors import RoutingServiceError
from race_route.route.models import Waypoint

_logger = logging.getLogger(__name__)

SUPPORTED_PROFILES = frozenset({"foot", "bike", "car"})


class OSRMRoutingClient:
    """Road-snap client for an OSRM server.

    Args:
        base_url: Server root; falls back to ``ROUTING_BASE_URL``.
        timeout: Per-request timeout in seconds.
        session: Optional :class:`requests.Session` (injected in tests).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        url = base_url or os.environ.get("ROUTING_BASE_URL", DEFAULT_ROUTING_URL)
        self.base_url = url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @staticmethod
    def format_coordinates(points: Sequence[Waypoint]) -> str:
        """Convert ``(lat, lng)`` points to OSRM's ``lon,lat;lon,lat`` form."""
        return ";".join(f"{lng:.6f},{lat:.6f}" for lat, lng in points)

    def snap(self, points: Sequence[Waypoint], profile: str) -> list[Waypoint]:
        """Return the road-following path through *points*.

        Raises:
            ValueError: Fewer than 2 points or an unknown *profile*.
            RoutingServiceError: Network failure, timeout, provider error or
                no route between the points.
        """
        if len(points) < 2:
            raise ValueError("At least two points are required to snap a route.")
        if profile not in SUPPORTED_PROFILES:
            raise ValueError(f"Unsupported routing profile: {profile!r}")

        url = f"{self.base_url}/route/v1/{profile}/{self.format_coordinates(points)}"
        _logger.debug("Snapping %d control points (%s)", len(points), profile)
        try:
            response = self._session.get(
                url,
                params={"overview": "full", "geometries": "geojson"},
                timeout=self.timeout,
            )
            data = response.json()
        except requests.Timeout as exc:
            raise RoutingServiceError("Routing service timed out", code="Timeout") from exc
        except (requests.RequestException, ValueError) as exc:
            raise RoutingServiceError(f"Routing service unavailable: {exc}") from exc

        code = data.get("code")
        if code == "NoRoute" or (code == "Ok" and not data.get("routes")):
            raise RoutingServiceError("No route found between the control points", code="NoRoute")
        if code != "Ok":
            raise RoutingServiceError(
                f"Routing error: {data.get('message', 'Unknown error')}", code=code
            )

        coordinates = data["routes"][0]["geometry"]["coordinates"]
        path = [Waypoint(float(lat), float(lng)) for lng, lat in coordinates]
        _logger.info("Snapped %d control points to %d waypoints", len(points), len(path))
        return path
