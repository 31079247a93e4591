"""FastAPI Web application exposing routes and participant progress."""

from __future__ import annotations

import dataclasses
import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

from race_route import __version__
from race_route.errors import (
    DegenerateRoute,
    IndexOutOfRange,
    InvalidSegment,
    NotFound,
    ProgressError,
)
from race_route.progress.models import STATUSES, ProgressRecord
from race_route.progress.resolver import ProgressResolver
from race_route.route.route import Route
from race_route.web.schemas import (
    EnrollRequest,
    EntryOut,
    HealthResponse,
    LogRequest,
    LogResponse,
    ParticipantProgressResponse,
    ParticipantRouteProgress,
    ProgressOut,
    ProgressViewResponse,
    RouteIn,
    RouteOut,
    RoutesResponse,
    WorkoutRequest,
    WorkoutResponse,
)
from race_route.web.service import RouteService

load_dotenv()  # loads .env from project root; must run before env vars are consumed

_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(title="Race Route Engine", version=__version__)

_DEFAULT_DB = os.environ.get("RACE_ROUTE_DB", "routes.db")

RECENT_ENTRIES = 10


def _service(db_path: str | None = None) -> RouteService:
    return RouteService(db_path or _DEFAULT_DB)


def _route_out(route: Route) -> RouteOut:
    return RouteOut(**route.to_dict())


def _progress_out(record: ProgressRecord) -> ProgressOut:
    return ProgressOut(
        participant_id=record.participant_id,
        route_id=record.route_id,
        cumulative_distance=record.cumulative_distance,
        status=record.status,
        total_seconds=record.total_seconds,
        is_passive=record.is_passive,
        completed_at=record.completed_at,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@app.get("/api/routes", response_model=RoutesResponse)
def list_routes(include_inactive: bool = False, db: str | None = None) -> RoutesResponse:
    routes = _service(db).list_routes(active_only=not include_inactive)
    return RoutesResponse(routes=[_route_out(r) for r in routes])


@app.get("/api/routes/{route_id}", response_model=RouteOut)
def get_route(route_id: int, db: str | None = None) -> RouteOut:
    try:
        return _route_out(_service(db).get_route(route_id))
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/api/routes", response_model=RouteOut)
def create_route(req: RouteIn, db: str | None = None) -> RouteOut:
    """Save an authored route; needs at least 2 waypoints."""
    try:
        route = _service(db).create_route(req)
    except (DegenerateRoute, InvalidSegment, IndexOutOfRange) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    _logger.info("Created route %d %r", route.id, route.name)
    return _route_out(route)


@app.put("/api/routes/{route_id}", response_model=RouteOut)
def update_route(route_id: int, req: RouteIn, db: str | None = None) -> RouteOut:
    try:
        route = _service(db).update_route(route_id, req)
    except (DegenerateRoute, InvalidSegment, IndexOutOfRange) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _route_out(route)


@app.delete("/api/routes/{route_id}")
def delete_route(route_id: int, db: str | None = None) -> dict:
    try:
        _service(db).delete_route(route_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"message": "Route deleted"}


@app.post("/api/routes/{route_id}/enroll", response_model=ProgressOut)
def enroll(route_id: int, req: EnrollRequest, db: str | None = None) -> ProgressOut:
    try:
        record = _service(db).enroll(req.participant_id, route_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProgressError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _progress_out(record)


@app.post("/api/routes/{route_id}/abandon", response_model=ProgressOut)
def abandon(route_id: int, req: EnrollRequest, db: str | None = None) -> ProgressOut:
    try:
        record = _service(db).abandon(req.participant_id, route_id)
    except ProgressError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _progress_out(record)


@app.post("/api/routes/{route_id}/log", response_model=LogResponse)
def log_distance(route_id: int, req: LogRequest, db: str | None = None) -> LogResponse:
    """Add miles to the participant's active record for this route."""
    try:
        record, completed = _service(db).log_distance(
            req.participant_id, route_id, req.distance, req.duration_s, req.notes
        )
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProgressError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return LogResponse(progress=_progress_out(record), completed=completed)


@app.get("/api/routes/{route_id}/progress/{participant_id}", response_model=ProgressViewResponse)
def progress_view(route_id: int, participant_id: str, db: str | None = None) -> ProgressViewResponse:
    """Render-ready position of a participant along the route."""
    try:
        record, view = _service(db).progress_view(participant_id, route_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    data = view.to_dict()
    return ProgressViewResponse(
        progress=_progress_out(record),
        fraction=data["fraction"],
        percent_complete=data["percent_complete"],
        current_position=data["current_position"],
        completed_path=data["completed_path"],
        remaining_path=data["remaining_path"],
        milestones_reached=data["milestones_reached"],
        distance_remaining=data["distance_remaining"],
    )


@app.get("/api/participants/{participant_id}/progress", response_model=ParticipantProgressResponse)
def participant_progress(
    participant_id: str, status: str | None = None, db: str | None = None
) -> ParticipantProgressResponse:
    """Every route the participant is on, passive routes first, newest entries first."""
    if status is not None and status not in STATUSES:
        raise HTTPException(status_code=422, detail=f"unknown status: {status}")
    pairs = _service(db).participant_progress(participant_id, status=status)
    routes = []
    for record, route in pairs:
        fraction = ProgressResolver.fraction(route.total_distance, record.cumulative_distance)
        recent = list(reversed(record.entries))[:RECENT_ENTRIES]
        routes.append(
            ParticipantRouteProgress(
                progress=_progress_out(record),
                route_name=route.name,
                total_distance=route.total_distance,
                percent_complete=round(fraction * 100, 1),
                recent_entries=[EntryOut(**dataclasses.asdict(e)) for e in recent],
            )
        )
    return ParticipantProgressResponse(participant_id=participant_id, routes=routes)


@app.post("/api/participants/{participant_id}/workouts", response_model=WorkoutResponse)
def log_workout(
    participant_id: str, req: WorkoutRequest, db: str | None = None
) -> WorkoutResponse:
    """Count a finished workout towards every active route, joining passive routes first."""
    enrolled, completed = _service(db).log_workout(participant_id, req.distance, req.duration_s)
    if completed:
        _logger.info("Workout for %s completed routes %s", participant_id, completed)
    return WorkoutResponse(enrolled_route_ids=enrolled, completed_route_ids=completed)
