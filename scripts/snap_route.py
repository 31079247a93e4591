"""Snap a stored route's waypoints to roads and save the result.

Usage:
  uv run python scripts/snap_route.py --route 2
  uv run python scripts/snap_route.py --route 2 --dry-run

Each tagged segment is routed with its own discipline's profile (control
points downsampled to SNAP_MAX_POINTS); swim segments keep their points.
An untagged triathlon cannot be snapped: tag its legs first.
Set ROUTING_BASE_URL to point at a self-hosted OSRM server.
"""

from __future__ import annotations

import argparse
import sys

from dotenv import load_dotenv

from race_route.config import Settings
from race_route.editor import OSRMRoutingClient, snap_route
from race_route.errors import RoutingServiceError
from race_route.storage import RouteStorage


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()

    ap = argparse.ArgumentParser(description="Road-snap a stored route")
    ap.add_argument("--db", default=settings.db_path, help="SQLite database path")
    ap.add_argument("--route", type=int, required=True, help="Route id")
    ap.add_argument("--dry-run", action="store_true", help="Print the result without saving")
    args = ap.parse_args()

    storage = RouteStorage(args.db)
    try:
        route = storage.get_route(args.route)
        if route is None:
            print(f"  [!] Route not found: {args.route}", file=sys.stderr)
            sys.exit(1)

        print(f"Route    : #{route.id} {route.name}")
        print(f"Router   : {settings.routing_base_url}")
        print(f"Before   : {len(route)} waypoints, {route.total_distance:.2f} mi")

        client = OSRMRoutingClient(settings.routing_base_url, timeout=settings.routing_timeout_s)
        try:
            snapped, routed = snap_route(route, client, max_points=settings.snap_max_points)
        except RoutingServiceError as exc:
            print(f"  [!] Road-snap failed: {exc}", file=sys.stderr)
            sys.exit(1)
        if routed == 0:
            print(
                "  [!] Nothing to snap: no part of this route has a road profile"
                " (tag triathlon legs before snapping)",
                file=sys.stderr,
            )
            sys.exit(1)

        print(f"Legs     : {routed} routed")
        print(f"After    : {len(snapped)} waypoints, {snapped.total_distance:.2f} mi")
        if args.dry_run:
            print("Dry run, nothing saved")
            return
        storage.update_route(args.route, snapped)
        print("[OK] Saved")
    finally:
        storage.close()


if __name__ == "__main__":
    main()
