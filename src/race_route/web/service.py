"""RouteService — route and progress operations for the Web API."""

from __future__ import annotations

from race_route.errors import NotFound
from race_route.progress.models import ProgressRecord, ProgressView
from race_route.progress.tracker import ProgressTracker
from race_route.route.route import Route
from race_route.storage import RouteStorage
from race_route.web.schemas import RouteIn


def build_route(req: RouteIn) -> Route:
    """Turn a request body into a validated :class:`Route`.

    Raises
    ------
    DegenerateRoute
        Fewer than 2 waypoints.
    InvalidSegment, IndexOutOfRange
        Segments that overlap, go backwards or run past the last waypoint.
    """
    route = Route.from_dict(req.model_dump())
    route.validate_for_save()
    return route


class RouteService:
    """Opens a :class:`RouteStorage` per call and closes it afterwards.

    Parameters
    ----------
    db_path:
        Path to the SQLite database.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def list_routes(self, active_only: bool = True) -> list[Route]:
        storage = RouteStorage(self._db_path)
        try:
            return storage.list_routes(active_only=active_only)
        finally:
            storage.close()

    def get_route(self, route_id: int) -> Route:
        storage = RouteStorage(self._db_path)
        try:
            route = storage.get_route(route_id)
        finally:
            storage.close()
        if route is None:
            raise NotFound(f"Route not found: {route_id}")
        return route

    def create_route(self, req: RouteIn) -> Route:
        route = build_route(req)
        storage = RouteStorage(self._db_path)
        try:
            storage.create_route(route)
        finally:
            storage.close()
        return route

    def update_route(self, route_id: int, req: RouteIn) -> Route:
        route = build_route(req)
        storage = RouteStorage(self._db_path)
        try:
            storage.update_route(route_id, route)
        finally:
            storage.close()
        return route

    def delete_route(self, route_id: int) -> None:
        storage = RouteStorage(self._db_path)
        try:
            storage.delete_route(route_id)
        finally:
            storage.close()

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def enroll(self, participant_id: str, route_id: int) -> ProgressRecord:
        storage = RouteStorage(self._db_path)
        try:
            return ProgressTracker(storage).enroll(participant_id, route_id)
        finally:
            storage.close()

    def abandon(self, participant_id: str, route_id: int) -> ProgressRecord:
        storage = RouteStorage(self._db_path)
        try:
            return ProgressTracker(storage).abandon(participant_id, route_id)
        finally:
            storage.close()

    def log_distance(
        self,
        participant_id: str,
        route_id: int,
        distance: float,
        duration_s: float | None = None,
        notes: str | None = None,
    ) -> tuple[ProgressRecord, bool]:
        storage = RouteStorage(self._db_path)
        try:
            return ProgressTracker(storage).log_distance(
                participant_id, route_id, distance, duration_s, notes
            )
        finally:
            storage.close()

    def progress_view(
        self, participant_id: str, route_id: int
    ) -> tuple[ProgressRecord, ProgressView]:
        storage = RouteStorage(self._db_path)
        try:
            view = ProgressTracker(storage).view(participant_id, route_id)
            record = storage.get_progress(participant_id, route_id)
        finally:
            storage.close()
        return record, view  # type: ignore[return-value]

    def participant_progress(
        self, participant_id: str, status: str | None = None
    ) -> list[tuple[ProgressRecord, Route]]:
        storage = RouteStorage(self._db_path)
        try:
            return ProgressTracker(storage).list_for(participant_id, status=status)
        finally:
            storage.close()

    def log_workout(
        self, participant_id: str, distance: float, duration_s: float | None = None
    ) -> tuple[list[int], list[int]]:
        storage = RouteStorage(self._db_path)
        try:
            return ProgressTracker(storage).log_workout(participant_id, distance, duration_s)
        finally:
            storage.close()
