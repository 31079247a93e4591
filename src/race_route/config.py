"""Environment-driven settings.

Values are read from the process environment (populate it with
``load_dotenv()`` at the entry point, as the web app and scripts do).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DB = "routes.db"
DEFAULT_ROUTING_URL = "https://router.project-osrm.org"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for storage and the road-snap adapter."""

    db_path: str = DEFAULT_DB
    routing_base_url: str = DEFAULT_ROUTING_URL
    routing_timeout_s: float = 5.0
    snap_debounce_s: float = 0.45
    snap_max_points: int = 25

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``RACE_ROUTE_*`` / ``ROUTING_*`` / ``SNAP_*`` variables."""
        return cls(
            db_path=os.environ.get("RACE_ROUTE_DB", DEFAULT_DB),
            routing_base_url=os.environ.get("ROUTING_BASE_URL", DEFAULT_ROUTING_URL),
            routing_timeout_s=float(os.environ.get("ROUTING_TIMEOUT_S", "5")),
            snap_debounce_s=float(os.environ.get("SNAP_DEBOUNCE_S", "0.45")),
            snap_max_points=int(os.environ.get("SNAP_MAX_POINTS", "25")),
        )
