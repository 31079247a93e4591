"""Progress data structures."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from race_route.errors import ProgressError
from race_route.route.models import Milestone, Waypoint

ACTIVE = "active"
COMPLETED = "completed"
ABANDONED = "abandoned"
STATUSES = (ACTIVE, COMPLETED, ABANDONED)


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class ProgressEntry:
    """One logged activity counted towards a route."""

    distance: float
    """Miles logged (> 0)."""

    duration_s: float | None = None
    notes: str | None = None
    logged_at: str = field(default_factory=_utcnow)


@dataclass
class ProgressRecord:
    """A participant's running progress on one route.

    ``cumulative_distance`` only ever grows: each :meth:`log` appends an
    entry.  It is never clamped to the route length, so the full log history
    is preserved even after the finish.
    """

    participant_id: str
    route_id: int
    cumulative_distance: float = 0.0
    status: str = ACTIVE
    total_seconds: float = 0.0
    is_passive: bool = False
    completed_at: str | None = None
    entries: list[ProgressEntry] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    def log(self, entry: ProgressEntry, route_total: float) -> bool:
        """Append *entry* and return True if it completed the route.

        Raises:
            ProgressError: Distance is not a positive finite number, duration
                is negative or not finite, or the record is not active.
        """
        if not entry.distance or not math.isfinite(entry.distance) or entry.distance <= 0:
            raise ProgressError("Distance must be a positive number")
        if entry.duration_s is not None and not (
            math.isfinite(entry.duration_s) and entry.duration_s >= 0
        ):
            raise ProgressError("Duration must be a non-negative number")
        if self.status != ACTIVE:
            raise ProgressError(f"Cannot log distance to a {self.status} record")

        self.entries.append(entry)
        self.cumulative_distance += entry.distance
        self.total_seconds += entry.duration_s or 0.0
        if self.cumulative_distance >= route_total:
            self.status = COMPLETED
            self.completed_at = entry.logged_at
            return True
        return False

    def abandon(self) -> None:
        """Leave the route; passive challenges cannot be abandoned."""
        if self.status != ACTIVE:
            raise ProgressError("Not enrolled in this route")
        if self.is_passive:
            raise ProgressError("Cannot abandon passive challenges")
        self.status = ABANDONED

    def reactivate(self) -> None:
        """Re-enroll after abandoning; the prior distance is kept."""
        if self.status != ABANDONED:
            raise ProgressError("Already enrolled in this route")
        self.status = ACTIVE

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass
class ProgressView:
    """Renderable snapshot of a participant's position on a route."""

    fraction: float
    """Share of the route covered, clamped to [0.0, 1.0]."""

    current_position: Waypoint | None
    completed_path: list[Waypoint]
    remaining_path: list[Waypoint]

    percent_complete: float
    """``fraction * 100`` rounded to one decimal."""

    milestones_reached: list[Milestone]
    """Every milestone at or below the unclamped cumulative distance."""

    cumulative_distance: float
    distance_remaining: float

    def to_dict(self) -> dict:
        return {
            "fraction": self.fraction,
            "current_position": (
                list(self.current_position) if self.current_position is not None else None
            ),
            "completed_path": [list(p) for p in self.completed_path],
            "remaining_path": [list(p) for p in self.remaining_path],
            "percent_complete": self.percent_complete,
            "milestones_reached": [m.to_dict() for m in self.milestones_reached],
            "cumulative_distance": self.cumulative_distance,
            "distance_remaining": self.distance_remaining,
        }
