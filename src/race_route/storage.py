"""RouteStorage — persists routes and participant progress to SQLite.

Schema design notes:
  - Route geometry (waypoints, segments, milestones) lives in one JSON
    column; ``total_distance`` is denormalised only so listings can sort by
    it.  Loading a route always recomputes the distance from the waypoints.
  - ``progress`` is keyed by ``(participant_id, route_id)``; its log history
    is the append-only ``progress_entries`` table.
"""

from __future__ import annotations

import contextlib
import json
import sqlite3

from race_route.errors import NotFound
from race_route.progress.models import ProgressEntry, ProgressRecord
from race_route.route.route import Route

_DDL = """
PRAGMA journal_mode = WAL;
PRAGMA synchronous  = NORMAL;
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS routes (
    id              INTEGER PRIMARY KEY,
    name            TEXT    NOT NULL,
    description     TEXT    NOT NULL DEFAULT '',
    city            TEXT    NOT NULL DEFAULT '',
    country         TEXT    NOT NULL DEFAULT '',
    discipline_type TEXT    NOT NULL DEFAULT 'run',
    difficulty      TEXT    NOT NULL DEFAULT 'intermediate',
    is_passive      INTEGER NOT NULL DEFAULT 0,
    is_active       INTEGER NOT NULL DEFAULT 1,
    total_distance  REAL    NOT NULL DEFAULT 0.0,
    geometry_json   TEXT    NOT NULL,
    created_at      TEXT    NOT NULL
                    DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE TABLE IF NOT EXISTS progress (
    id                  INTEGER PRIMARY KEY,
    participant_id      TEXT    NOT NULL,
    route_id            INTEGER NOT NULL REFERENCES routes (id) ON DELETE CASCADE,
    cumulative_distance REAL    NOT NULL DEFAULT 0.0,
    status              TEXT    NOT NULL DEFAULT 'active',
    total_seconds       REAL    NOT NULL DEFAULT 0.0,
    is_passive          INTEGER NOT NULL DEFAULT 0,
    completed_at        TEXT,
    UNIQUE (participant_id, route_id)
);

CREATE TABLE IF NOT EXISTS progress_entries (
    id          INTEGER PRIMARY KEY,
    progress_id INTEGER NOT NULL REFERENCES progress (id) ON DELETE CASCADE,
    distance    REAL    NOT NULL,
    duration_s  REAL,
    notes       TEXT,
    logged_at   TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_progress_participant
    ON progress (participant_id, status);
"""

_ROUTE_COLUMNS = """
    name, description, city, country, discipline_type, difficulty,
    is_passive, is_active, total_distance, geometry_json
"""

_INSERT_ROUTE = f"""
INSERT INTO routes ({_ROUTE_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_UPDATE_ROUTE = """
UPDATE routes
SET    name = ?, description = ?, city = ?, country = ?, discipline_type = ?,
       difficulty = ?, is_passive = ?, is_active = ?, total_distance = ?,
       geometry_json = ?
WHERE  id = ?
"""

_UPSERT_PROGRESS = """
INSERT INTO progress (
    participant_id, route_id, cumulative_distance, status,
    total_seconds, is_passive, completed_at
) VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (participant_id, route_id) DO UPDATE SET
    cumulative_distance = excluded.cumulative_distance,
    status              = excluded.status,
    total_seconds       = excluded.total_seconds,
    is_passive          = excluded.is_passive,
    completed_at        = excluded.completed_at
"""

_SELECT_PROGRESS = """
SELECT * FROM progress WHERE participant_id = ? AND route_id = ?
"""

_INSERT_ENTRY = """
INSERT INTO progress_entries (progress_id, distance, duration_s, notes, logged_at)
VALUES ((SELECT id FROM progress WHERE participant_id = ? AND route_id = ?), ?, ?, ?, ?)
"""

_SELECT_ENTRIES = """
SELECT distance, duration_s, notes, logged_at
FROM   progress_entries
WHERE  progress_id = ?
ORDER  BY id
"""


class RouteStorage:
    """Stores routes and progress records in a SQLite database.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Pass ``":memory:"`` for in-process testing.
    """

    def __init__(self, db_path: str = "routes.db") -> None:
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        for stmt in _DDL.strip().split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.commit()

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def create_route(self, route: Route) -> int:
        """Persist *route*, assign its ``id`` and return it."""
        cursor = self._conn.execute(_INSERT_ROUTE, _route_params(route))
        self._conn.commit()
        route.id = cursor.lastrowid
        return route.id  # type: ignore[return-value]

    def get_route(self, route_id: int) -> Route | None:
        row = self._conn.execute("SELECT * FROM routes WHERE id = ?", (route_id,)).fetchone()
        return _row_to_route(row) if row else None

    def find_route_by_name(self, name: str) -> Route | None:
        row = self._conn.execute(
            "SELECT * FROM routes WHERE name = ? ORDER BY id LIMIT 1", (name,)
        ).fetchone()
        return _row_to_route(row) if row else None

    def update_route(self, route_id: int, route: Route) -> None:
        """Overwrite the stored route.  Raises :class:`NotFound` if absent."""
        cursor = self._conn.execute(_UPDATE_ROUTE, (*_route_params(route), route_id))
        self._conn.commit()
        if cursor.rowcount == 0:
            raise NotFound(f"Route not found: {route_id}")
        route.id = route_id

    def delete_route(self, route_id: int) -> None:
        """Delete a route together with all progress recorded against it."""
        cursor = self._conn.execute("DELETE FROM routes WHERE id = ?", (route_id,))
        self._conn.commit()
        if cursor.rowcount == 0:
            raise NotFound(f"Route not found: {route_id}")

    def list_routes(self, active_only: bool = True) -> list[Route]:
        """Return routes, passive challenges first, then by distance."""
        where = "WHERE is_active = 1" if active_only else ""
        rows = self._conn.execute(
            f"SELECT * FROM routes {where} ORDER BY is_passive DESC, total_distance, id"
        ).fetchall()
        return [_row_to_route(r) for r in rows]

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def get_progress(self, participant_id: str, route_id: int) -> ProgressRecord | None:
        """Return the record with its full entry history, or ``None``."""
        row = self._conn.execute(_SELECT_PROGRESS, (participant_id, route_id)).fetchone()
        return self._row_to_progress(row) if row else None

    def save_progress(self, record: ProgressRecord) -> None:
        """Insert or update the scalar fields of *record* (entries excluded)."""
        self._conn.execute(_UPSERT_PROGRESS, _progress_params(record))
        self._conn.commit()

    def record_log(self, record: ProgressRecord, entry: ProgressEntry) -> None:
        """Persist *record* and append *entry* in a single transaction."""
        with self._conn:
            self._conn.execute(_UPSERT_PROGRESS, _progress_params(record))
            self._conn.execute(
                _INSERT_ENTRY,
                (
                    record.participant_id,
                    record.route_id,
                    entry.distance,
                    entry.duration_s,
                    entry.notes,
                    entry.logged_at,
                ),
            )

    def list_progress(
        self, participant_id: str, status: str | None = None
    ) -> list[ProgressRecord]:
        """Return every record of *participant_id*, optionally filtered by status."""
        sql = "SELECT * FROM progress WHERE participant_id = ?"
        params: tuple = (participant_id,)
        if status is not None:
            sql += " AND status = ?"
            params += (status,)
        rows = self._conn.execute(sql + " ORDER BY is_passive DESC, id", params).fetchall()
        return [self._row_to_progress(r) for r in rows]

    def delete_progress(self, participant_id: str, route_id: int) -> None:
        self._conn.execute(
            "DELETE FROM progress WHERE participant_id = ? AND route_id = ?",
            (participant_id, route_id),
        )
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __del__(self) -> None:
        with contextlib.suppress(Exception):
            self._conn.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_progress(self, row: sqlite3.Row) -> ProgressRecord:
        entries = [
            ProgressEntry(
                distance=float(e["distance"]),
                duration_s=e["duration_s"],
                notes=e["notes"],
                logged_at=e["logged_at"],
            )
            for e in self._conn.execute(_SELECT_ENTRIES, (row["id"],)).fetchall()
        ]
        return ProgressRecord(
            participant_id=row["participant_id"],
            route_id=int(row["route_id"]),
            cumulative_distance=float(row["cumulative_distance"]),
            status=row["status"],
            total_seconds=float(row["total_seconds"]),
            is_passive=bool(row["is_passive"]),
            completed_at=row["completed_at"],
            entries=entries,
        )


def _route_params(route: Route) -> tuple:
    d = route.to_dict()
    geometry = {k: d[k] for k in ("waypoints", "segments", "milestones")}
    return (
        route.name,
        route.description,
        route.city,
        route.country,
        route.discipline_type,
        route.difficulty,
        int(route.is_passive),
        int(route.is_active),
        route.total_distance,
        json.dumps(geometry),
    )


def _row_to_route(row: sqlite3.Row) -> Route:
    d = dict(row)
    d.update(json.loads(d.pop("geometry_json")))
    return Route.from_dict(d)


def _progress_params(record: ProgressRecord) -> tuple:
    return (
        record.participant_id,
        record.route_id,
        record.cumulative_distance,
        record.status,
        record.total_seconds,
        int(record.is_passive),
        record.completed_at,
    )
