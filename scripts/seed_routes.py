"""Seed the built-in routes into a route database.

Usage:
  uv run python scripts/seed_routes.py
  uv run python scripts/seed_routes.py --db routes.db --participant alice

Routes already present (matched by name) are skipped.  With --participant
the participant is also enrolled in every passive challenge.
"""

from __future__ import annotations

import argparse

from dotenv import load_dotenv

from race_route.catalog import seed_builtin_routes
from race_route.config import Settings
from race_route.progress.tracker import ProgressTracker
from race_route.storage import RouteStorage


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()

    ap = argparse.ArgumentParser(description="Seed built-in routes")
    ap.add_argument("--db", default=settings.db_path, help="SQLite database path")
    ap.add_argument("--participant", help="Also enroll this participant in passive routes")
    args = ap.parse_args()

    print(f"Database : {args.db}")
    storage = RouteStorage(args.db)
    try:
        created = seed_builtin_routes(storage)
        print(f"Seeded {created} new route(s)")

        for route in storage.list_routes(active_only=False):
            flag = " (passive)" if route.is_passive else ""
            print(f"  #{route.id:<3} {route.name:<32} {route.total_distance:>8.1f} mi{flag}")

        if args.participant:
            enrolled = ProgressTracker(storage).ensure_passive(args.participant)
            print(f"Enrolled {args.participant} in {len(enrolled)} passive route(s)")
    finally:
        storage.close()


if __name__ == "__main__":
    main()
