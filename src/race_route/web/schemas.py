"""Pydantic request/response schemas for the Web API."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from race_route.route.models import DIFFICULTIES, DISCIPLINES, MULTI_DISCIPLINE


class HealthResponse(BaseModel):
    status: str
    version: str


class SegmentSchema(BaseModel):
    discipline: str
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)


class MilestoneSchema(BaseModel):
    mile: float = Field(ge=0)
    label: str = ""
    lat: float
    lng: float


class RouteIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    city: str = ""
    country: str = ""
    discipline_type: str = "run"
    difficulty: str = "intermediate"
    is_passive: bool = False
    is_active: bool = True
    waypoints: list[tuple[float, float]]
    segments: list[SegmentSchema] = Field(default_factory=list)
    milestones: list[MilestoneSchema] = Field(default_factory=list)

    @field_validator("waypoints")
    @classmethod
    def validate_coords(cls, coords: list[tuple[float, float]]):
        for lat, lng in coords:
            if not -90.0 <= lat <= 90.0:
                raise ValueError(f"lat out of range [-90,90]: {lat}")
            if not -180.0 <= lng <= 180.0:
                raise ValueError(f"lng out of range [-180,180]: {lng}")
        return coords

    @field_validator("discipline_type")
    @classmethod
    def validate_discipline(cls, value: str) -> str:
        if value not in DISCIPLINES and value != MULTI_DISCIPLINE:
            raise ValueError(f"unknown discipline: {value}")
        return value

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, value: str) -> str:
        if value not in DIFFICULTIES:
            raise ValueError(f"unknown difficulty: {value}")
        return value


class RouteOut(RouteIn):
    id: int
    total_distance: float


class RoutesResponse(BaseModel):
    routes: list[RouteOut]


class EnrollRequest(BaseModel):
    participant_id: str = Field(min_length=1)


class LogRequest(BaseModel):
    participant_id: str = Field(min_length=1)
    distance: float = Field(gt=0, allow_inf_nan=False)
    duration_s: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    notes: str | None = None


class WorkoutRequest(BaseModel):
    distance: float = Field(gt=0, allow_inf_nan=False)
    duration_s: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class ProgressOut(BaseModel):
    participant_id: str
    route_id: int
    cumulative_distance: float
    status: str
    total_seconds: float
    is_passive: bool
    completed_at: str | None = None


class LogResponse(BaseModel):
    progress: ProgressOut
    completed: bool


class ProgressViewResponse(BaseModel):
    progress: ProgressOut
    fraction: float
    percent_complete: float
    current_position: tuple[float, float] | None
    completed_path: list[tuple[float, float]]
    remaining_path: list[tuple[float, float]]
    milestones_reached: list[MilestoneSchema]
    distance_remaining: float


class EntryOut(BaseModel):
    distance: float
    duration_s: float | None = None
    notes: str | None = None
    logged_at: str


class ParticipantRouteProgress(BaseModel):
    progress: ProgressOut
    route_name: str
    total_distance: float
    percent_complete: float
    recent_entries: list[EntryOut]


class ParticipantProgressResponse(BaseModel):
    participant_id: str
    routes: list[ParticipantRouteProgress]


class WorkoutResponse(BaseModel):
    enrolled_route_ids: list[int]
    completed_route_ids: list[int]
