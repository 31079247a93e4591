"""Route data structures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

DISCIPLINES = ("run", "bike", "swim", "walk")
"""Single-discipline tags a route or segment may carry."""

MULTI_DISCIPLINE = "triathlon"
"""Route-level type for swim/bike/run routes split into segments."""

TRIATHLON_CYCLE = ("swim", "bike", "run")
"""Order in which segment transitions are tagged on a multi-discipline route."""

DIFFICULTIES = ("beginner", "intermediate", "advanced", "legendary")


class Waypoint(NamedTuple):
    """A single ``(lat, lng)`` point in decimal degrees.

    Being a tuple, a waypoint compares equal to a plain ``(lat, lng)`` pair.
    """

    lat: float
    lng: float

    @classmethod
    def of(cls, point) -> Waypoint:
        """Coerce any two-element ``(lat, lng)`` sequence into a :class:`Waypoint`."""
        lat, lng = point
        return cls(float(lat), float(lng))


@dataclass(frozen=True)
class Segment:
    """A contiguous, inclusive waypoint index range tagged with a discipline."""

    discipline: str
    start_index: int
    end_index: int

    def to_dict(self) -> dict:
        return {
            "discipline": self.discipline,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Segment:
        return cls(
            discipline=str(d["discipline"]),
            start_index=int(d["start_index"]),
            end_index=int(d["end_index"]),
        )


@dataclass(frozen=True)
class Milestone:
    """A fixed point of interest referenced by its absolute mile marker."""

    mile: float
    """Distance from the start in miles."""

    label: str
    """Display label, e.g. ``"Heartbreak Hill"``."""

    position: Waypoint
    """Where the marker sits on the map; independent of waypoint indices."""

    def to_dict(self) -> dict:
        return {
            "mile": self.mile,
            "label": self.label,
            "lat": self.position.lat,
            "lng": self.position.lng,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Milestone:
        return cls(
            mile=float(d["mile"]),
            label=str(d.get("label") or ""),
            position=Waypoint(float(d["lat"]), float(d["lng"])),
        )
