"""Built-in routes and seeding.

Each entry is in the persisted route shape accepted by :meth:`Route.from_dict`.
Distances are always derived from the waypoints, so none are listed here.
"""

from __future__ import annotations

import logging

from race_route.route.route import Route
from race_route.storage import RouteStorage

_logger = logging.getLogger(__name__)

BUILTIN_ROUTES: list[dict] = [
    {
        "name": "Run Across America",
        "description": (
            "Coast to coast from New York City to Los Angeles. Every logged "
            "workout counts towards the crossing."
        ),
        "city": "USA",
        "country": "USA",
        "discipline_type": "run",
        "difficulty": "legendary",
        "is_passive": True,
        "waypoints": [
            [40.7128, -74.0060],   # New York City
            [39.9526, -75.1652],   # Philadelphia
            [40.4406, -79.9959],   # Pittsburgh
            [39.7684, -86.1581],   # Indianapolis
            [38.6270, -90.1994],   # St. Louis
            [39.0997, -94.5786],   # Kansas City
            [39.7555, -104.9874],  # Denver
            [40.7608, -111.8910],  # Salt Lake City
            [36.1699, -115.1398],  # Las Vegas
            [34.0522, -118.2437],  # Los Angeles
        ],
        "milestones": [
            {"mile": 0, "label": "New York City, NY", "lat": 40.7128, "lng": -74.0060},
            {"mile": 660, "label": "Indianapolis, IN", "lat": 39.7684, "lng": -86.1581},
            {"mile": 1600, "label": "Denver, CO", "lat": 39.7555, "lng": -104.9874},
            {"mile": 2400, "label": "Las Vegas, NV", "lat": 36.1699, "lng": -115.1398},
        ],
    },
    {
        "name": "Boston Marathon",
        "description": "Hopkinton to Copley Square, over Heartbreak Hill.",
        "city": "Boston, MA",
        "country": "USA",
        "discipline_type": "run",
        "difficulty": "advanced",
        "waypoints": [
            [42.2293, -71.5228],   # Hopkinton
            [42.2329, -71.4804],
            [42.2508, -71.4638],   # Ashland
            [42.2656, -71.4367],   # Framingham
            [42.2880, -71.3579],   # Natick
            [42.2965, -71.2987],   # Wellesley
            [42.3235, -71.2425],
            [42.3295, -71.2168],   # Newton Hills
            [42.3345, -71.1897],   # Heartbreak Hill
            [42.3445, -71.1512],   # Brighton
            [42.3478, -71.1095],   # Coolidge Corner
            [42.3485, -71.0904],   # Kenmore Square
            [42.3497, -71.0776],   # Copley Square
        ],
        "milestones": [
            {"mile": 0, "label": "Start - Hopkinton", "lat": 42.2293, "lng": -71.5228},
            {"mile": 13.1, "label": "Wellesley", "lat": 42.2965, "lng": -71.2987},
            {"mile": 20, "label": "Heartbreak Hill", "lat": 42.3345, "lng": -71.1897},
        ],
    },
    {
        "name": "Lake Monona Sprint Triathlon",
        "description": "Lake swim, a loop of the isthmus by bike, and a lakeshore run.",
        "city": "Madison, WI",
        "country": "USA",
        "discipline_type": "triathlon",
        "difficulty": "intermediate",
        "waypoints": [
            [43.0665, -89.3740],   # swim start
            [43.0700, -89.3705],
            [43.0668, -89.3738],   # T1
            [43.0746, -89.3841],
            [43.0870, -89.3620],
            [43.0960, -89.3480],
            [43.0800, -89.3560],   # T2
            [43.0735, -89.3680],
            [43.0668, -89.3738],   # finish
        ],
        "segments": [
            {"discipline": "swim", "start_index": 0, "end_index": 2},
            {"discipline": "bike", "start_index": 2, "end_index": 6},
            {"discipline": "run", "start_index": 6, "end_index": 8},
        ],
    },
]


def seed_builtin_routes(storage: RouteStorage) -> int:
    """Insert every built-in route not already stored (matched by name).

    Returns the number of routes created.
    """
    created = 0
    for data in BUILTIN_ROUTES:
        if storage.find_route_by_name(data["name"]) is not None:
            continue
        route = Route.from_dict(data)
        storage.create_route(route)
        _logger.info("Seeded route %r (%.1f mi)", route.name, route.total_distance)
        created += 1
    return created
