"""Route — a waypoint path with discipline segments and milestone markers."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from race_route.errors import DegenerateRoute, IndexOutOfRange, InvalidSegment
from race_route.route import geometry
from race_route.route.models import Milestone, Segment, Waypoint

_logger = logging.getLogger(__name__)


class Route:
    """One route's waypoints, segments and milestones.

    ``total_distance`` is derived from the waypoints and recomputed by every
    mutating method; it is never set directly.

    Inserting or removing a waypoint at index ``i`` shifts every later index,
    so segments with ``end_index >= i`` are dropped and must be re-tagged.
    Moving a waypoint keeps all indices, so segments survive a move.
    Replacing the whole path with a different one drops every segment.
    """

    def __init__(
        self,
        waypoints: Iterable = (),
        *,
        name: str = "",
        description: str = "",
        city: str = "",
        country: str = "",
        discipline_type: str = "run",
        difficulty: str = "intermediate",
        is_passive: bool = False,
        is_active: bool = True,
        route_id: int | None = None,
    ) -> None:
        self.id = route_id
        self.name = name
        self.description = description
        self.city = city
        self.country = country
        self.discipline_type = discipline_type
        self.difficulty = difficulty
        self.is_passive = is_passive
        self.is_active = is_active
        self._waypoints: list[Waypoint] = [Waypoint.of(p) for p in waypoints]
        self._segments: list[Segment] = []
        self._milestones: list[Milestone] = []
        self._total_distance = 0.0
        self._recompute()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def waypoints(self) -> list[Waypoint]:
        """A copy of the ordered waypoint list."""
        return list(self._waypoints)

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    @property
    def milestones(self) -> list[Milestone]:
        return list(self._milestones)

    @property
    def total_distance(self) -> float:
        """Total path length in miles."""
        return self._total_distance

    @property
    def is_drawable(self) -> bool:
        """True for zero or at least 2 waypoints (one point has no direction)."""
        return len(self._waypoints) != 1

    def __len__(self) -> int:
        return len(self._waypoints)

    def __repr__(self) -> str:
        return (
            f"Route(id={self.id!r}, name={self.name!r}, "
            f"waypoints={len(self._waypoints)}, miles={self._total_distance:.2f})"
        )

    # ------------------------------------------------------------------
    # Waypoint mutation
    # ------------------------------------------------------------------

    def set_waypoints(self, points: Iterable) -> None:
        """Replace every waypoint.

        Indices in the old path mean nothing in a new one, so segments are
        dropped unless *points* is the same sequence as before.
        """
        new = [Waypoint.of(p) for p in points]
        if new != self._waypoints and self._segments:
            _logger.warning(
                "Route %r: replacing waypoints dropped %d segment(s); re-tag required",
                self.name, len(self._segments),
            )
            self._segments = []
        self._waypoints = new
        self._recompute()

    def insert_waypoint(self, point, at_index: int | None = None) -> int:
        """Insert *point* and return the index it now occupies.

        Without *at_index* the point joins its nearest segment.
        """
        wp = Waypoint.of(point)
        if at_index is None:
            at_index = geometry.nearest_segment_insert_index(self._waypoints, wp)
        elif not 0 <= at_index <= len(self._waypoints):
            raise IndexOutOfRange(
                f"Insert index {at_index} outside 0..{len(self._waypoints)}"
            )
        self._waypoints.insert(at_index, wp)
        self._invalidate_segments_from(at_index)
        self._recompute()
        return at_index

    def append_waypoint(self, point) -> int:
        """Append *point* to the end of the path and return its index."""
        return self.insert_waypoint(point, len(self._waypoints))

    def move_waypoint(self, index: int, point) -> None:
        self._check_index(index)
        self._waypoints[index] = Waypoint.of(point)
        self._recompute()

    def remove_waypoint(self, index: int) -> Waypoint:
        """Remove and return the waypoint at *index*."""
        self._check_index(index)
        removed = self._waypoints.pop(index)
        self._invalidate_segments_from(index)
        self._recompute()
        return removed

    def clear(self) -> None:
        """Empty waypoints, segments and milestones."""
        self._waypoints = []
        self._segments = []
        self._milestones = []
        self._recompute()

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    def add_segment_tag(self, discipline: str, end_index: int) -> Segment:
        """Tag the span from the previous segment's end (or 0) to *end_index*.

        Raises:
            IndexOutOfRange: *end_index* is not a waypoint position.
            InvalidSegment: *end_index* does not advance past the previous end.
        """
        start = self._segments[-1].end_index if self._segments else 0
        if not 0 <= end_index < len(self._waypoints):
            raise IndexOutOfRange(
                f"Segment end {end_index} outside 0..{len(self._waypoints) - 1}"
            )
        if end_index <= start:
            raise InvalidSegment(
                f"Segment {discipline!r} must end after index {start}, got {end_index}"
            )
        segment = Segment(discipline=discipline, start_index=start, end_index=end_index)
        self._segments.append(segment)
        return segment

    def clear_segments(self) -> None:
        self._segments = []

    def discipline_at(self, index: int) -> str | None:
        """Discipline of the first segment covering waypoint *index*, if any."""
        for seg in self._segments:
            if seg.start_index <= index <= seg.end_index:
                return seg.discipline
        return None

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def add_milestone(self, mile: float, label: str = "", position=None) -> Milestone:
        """Add a marker *mile* miles from the start.

        Without *position* the marker is placed on the path itself.
        """
        if mile < 0:
            raise ValueError("Milestone mile must be >= 0")
        if position is None:
            if len(self._waypoints) < 2:
                raise DegenerateRoute("Milestones need a route with at least 2 waypoints")
            fraction = mile / self._total_distance if self._total_distance > 0 else 0.0
            position = geometry.position_at_fraction(self._waypoints, fraction)
        milestone = Milestone(mile=float(mile), label=label, position=Waypoint.of(position))
        self._milestones.append(milestone)
        self._milestones.sort(key=lambda m: m.mile)
        return milestone

    def clear_milestones(self) -> None:
        self._milestones = []

    # ------------------------------------------------------------------
    # Validation & serialisation
    # ------------------------------------------------------------------

    def validate_for_save(self) -> None:
        """Raise :class:`DegenerateRoute` unless the route has a real path."""
        if len(self._waypoints) < 2:
            raise DegenerateRoute("Please add at least 2 waypoints")

    def copy(self) -> Route:
        return Route.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        """Return the persisted, JSON-serialisable shape."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "city": self.city,
            "country": self.country,
            "discipline_type": self.discipline_type,
            "difficulty": self.difficulty,
            "is_passive": self.is_passive,
            "is_active": self.is_active,
            "waypoints": [[p.lat, p.lng] for p in self._waypoints],
            "segments": [s.to_dict() for s in self._segments],
            "milestones": [m.to_dict() for m in self._milestones],
            "total_distance": self._total_distance,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Route:
        """Build a route from its persisted shape.

        A stored ``total_distance`` is ignored; it is recomputed from the
        waypoints.
        """
        route = cls(
            d.get("waypoints") or [],
            name=d.get("name") or "",
            description=d.get("description") or "",
            city=d.get("city") or "",
            country=d.get("country") or "",
            discipline_type=d.get("discipline_type") or "run",
            difficulty=d.get("difficulty") or "intermediate",
            is_passive=bool(d.get("is_passive", False)),
            is_active=bool(d.get("is_active", True)),
            route_id=d.get("id"),
        )
        for seg in d.get("segments") or []:
            s = Segment.from_dict(seg)
            expected = route._segments[-1].end_index if route._segments else 0
            if s.start_index != expected:
                raise InvalidSegment(
                    f"Segment {s.discipline!r} starts at {s.start_index}, expected {expected}"
                )
            route.add_segment_tag(s.discipline, s.end_index)
        for ms in d.get("milestones") or []:
            m = Milestone.from_dict(ms)
            route.add_milestone(m.mile, m.label, m.position)
        return route

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._waypoints):
            raise IndexOutOfRange(
                f"Waypoint index {index} outside 0..{len(self._waypoints) - 1}"
            )

    def _invalidate_segments_from(self, index: int) -> None:
        """Drop every segment whose range reaches *index* or beyond."""
        kept = [s for s in self._segments if s.end_index < index]
        if len(kept) != len(self._segments):
            _logger.warning(
                "Route %r: edit at index %d invalidated %d segment(s); re-tag required",
                self.name, index, len(self._segments) - len(kept),
            )
        self._segments = kept

    def _recompute(self) -> None:
        self._total_distance = geometry.total_distance(self._waypoints)

