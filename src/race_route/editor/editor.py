"""RouteEditor — the authoring state machine over a draft :class:`Route`.

The editor is the single source of truth while a route is being drawn.
Rendering layers subscribe to it and redraw on every change; marker and map
callbacks only dispatch editor events (:meth:`RouteEditor.click`,
:meth:`RouteEditor.drag_end`, :meth:`RouteEditor.right_click`, ...).
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from typing import NamedTuple

from race_route.editor.snap import (
    RoadSnapAdapter,
    SnapState,
    join_paths,
    profile_for_discipline,
)
from race_route.errors import IndexOutOfRange, InvalidSegment, RoutingServiceError
from race_route.route import geometry
from race_route.route.models import MULTI_DISCIPLINE, TRIATHLON_CYCLE, Milestone, Waypoint
from race_route.route.route import Route

_logger = logging.getLogger(__name__)

Listener = Callable[["RouteEditor"], None]


class _Leg(NamedTuple):
    """A closed road-snap leg: its discipline, last control index and snapped path."""

    discipline: str
    control_end: int
    path: list[Waypoint]


class EditorMode(enum.Enum):
    """Which point list the author is editing.

    ``FREE_DRAW`` edits the draft's waypoints directly; ``ROAD_SNAP`` edits a
    separate list of control points that the snap adapter turns into the
    draft's waypoints.
    """

    FREE_DRAW = "free_draw"
    ROAD_SNAP = "road_snap"


class RouteEditor:
    """Single-author editing session for one draft route.

    Parameters
    ----------
    route:
        Draft to edit; a new empty :class:`Route` if omitted.
    snap_client:
        Routing client used when road-snap mode is switched on.
    debounce_s, max_points:
        Passed to the adapter created from *snap_client*.
    """

    def __init__(
        self,
        route: Route | None = None,
        snap_client=None,
        debounce_s: float = 0.45,
        max_points: int = 25,
    ) -> None:
        self._route = route if route is not None else Route()
        self._lock = threading.RLock()
        self._mode = EditorMode.FREE_DRAW
        self._control_points: list[Waypoint] = []
        self._controls_dirty = False
        self._dense: list[Waypoint] | None = None
        self._legs: list[_Leg] = []
        self._snap_generation: int | None = None
        self._listeners: list[Listener] = []
        self.last_error: RoutingServiceError | None = None

        self._max_points = max_points
        self._adapter: RoadSnapAdapter | None = None
        if snap_client is not None:
            self._adapter = RoadSnapAdapter(
                snap_client,
                on_result=self._on_snap_result,
                on_error=self._on_snap_error,
                debounce_s=debounce_s,
                max_points=max_points,
            )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def route(self) -> Route:
        return self._route

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def control_points(self) -> list[Waypoint]:
        return list(self._control_points)

    @property
    def snap_state(self) -> SnapState:
        return self._adapter.state if self._adapter is not None else SnapState.IDLE

    @property
    def distance(self) -> float:
        """Current draft length in miles."""
        return self._route.total_distance

    @property
    def next_discipline(self) -> str | None:
        """Discipline the next segment transition will tag, or ``None`` when exhausted.

        Follows the last tag in place, so dropping segments rewinds the cycle.
        """
        if self._mode is EditorMode.ROAD_SNAP:
            tags = [leg.discipline for leg in self._legs]
        else:
            tags = [seg.discipline for seg in self._route.segments]
        if not tags:
            pos = 0
        elif tags[-1] in TRIATHLON_CYCLE:
            pos = TRIATHLON_CYCLE.index(tags[-1]) + 1
        else:
            pos = len(tags)
        return TRIATHLON_CYCLE[pos] if pos < len(TRIATHLON_CYCLE) else None

    @property
    def active_discipline(self) -> str:
        """Discipline of the part of the route currently being drawn."""
        if self._route.discipline_type == MULTI_DISCIPLINE:
            return self.next_discipline or TRIATHLON_CYCLE[-1]
        return self._route.discipline_type

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener(editor)* after every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def click(self, point) -> None:
        """Append a waypoint (free-draw) or control point (road-snap)."""
        wp = Waypoint.of(point)
        with self._lock:
            if self._mode is EditorMode.FREE_DRAW:
                self._route.append_waypoint(wp)
            else:
                self._control_points.append(wp)
                self._controls_changed(len(self._control_points) - 1)
        self._notify()

    def drag_end(self, index: int, point) -> None:
        """Move the point at *index* of the active list."""
        wp = Waypoint.of(point)
        with self._lock:
            if self._mode is EditorMode.FREE_DRAW:
                self._route.move_waypoint(index, wp)
            else:
                self._check_control_index(index)
                self._control_points[index] = wp
                self._controls_changed(index)
        self._notify()

    def right_click(self, point) -> int:
        """Insert *point* into its nearest segment; returns the insert index."""
        wp = Waypoint.of(point)
        with self._lock:
            if self._mode is EditorMode.FREE_DRAW:
                idx = self._route.insert_waypoint(wp)
            else:
                idx = geometry.nearest_segment_insert_index(self._control_points, wp)
                self._control_points.insert(idx, wp)
                self._controls_changed(idx)
        self._notify()
        return idx

    def remove_point(self, index: int) -> Waypoint:
        """Remove the point at *index* of the active list."""
        with self._lock:
            if self._mode is EditorMode.FREE_DRAW:
                removed = self._route.remove_waypoint(index)
            else:
                self._check_control_index(index)
                removed = self._control_points.pop(index)
                self._controls_changed(index)
        self._notify()
        return removed

    def undo(self) -> None:
        """Pop the most recent point of the active list; no-op when empty."""
        with self._lock:
            if self._mode is EditorMode.FREE_DRAW:
                if len(self._route) == 0:
                    return
                self._route.remove_waypoint(len(self._route) - 1)
            else:
                if not self._control_points:
                    return
                self._control_points.pop()
                self._controls_changed(len(self._control_points))
        self._notify()

    def clear_all(self) -> None:
        """Empty waypoints, control points, segments and milestones."""
        with self._lock:
            if self._adapter is not None:
                self._adapter.cancel()
            self._snap_generation = None
            self._route.clear()
            self._control_points = []
            self._controls_dirty = False
            self._dense = None
            self._legs = []
            self.last_error = None
        self._notify()

    def set_segment_transition(self, discipline: str | None = None):
        """Close a segment at the current end of the draft.

        Without *discipline* the next entry of the swim → bike → run cycle is
        used.  In road-snap mode the open leg is frozen with its snapped path,
        so the snap for it must have finished first.

        Raises:
            InvalidSegment: The cycle is exhausted, the segment would not
                advance past the previous one, or the open leg has not been
                snapped yet.
            IndexOutOfRange: The draft has no waypoints.
        """
        with self._lock:
            tag = discipline or self.next_discipline
            if tag is None:
                raise InvalidSegment("All disciplines have already been tagged")
            if self._mode is EditorMode.FREE_DRAW:
                segment = self._route.add_segment_tag(tag, len(self._route) - 1)
            else:
                segment = self._close_leg(tag)
        self._notify()
        return segment

    def add_milestone(self, mile: float, label: str = "") -> Milestone:
        """Place a milestone *mile* miles along the draft."""
        with self._lock:
            milestone = self._route.add_milestone(mile, label)
        self._notify()
        return milestone

    # ------------------------------------------------------------------
    # Road-snap mode
    # ------------------------------------------------------------------

    def set_mode(self, mode: EditorMode) -> None:
        """Switch between free-draw and road-snap.

        Entering road-snap seeds the control points from the draft
        (downsampled per segment) and turns existing segments into closed
        legs.  Leaving it commits the last snapped path, or the raw control
        points if no snap has completed since they were edited.
        """
        with self._lock:
            if mode is self._mode:
                return
            if mode is EditorMode.ROAD_SNAP:
                if self._adapter is None:
                    raise RuntimeError("Road-snap mode needs a routing client")
                self._seed_controls()
                self._controls_dirty = False
            else:
                if self._adapter is not None:
                    self._adapter.cancel()
                self._snap_generation = None
                self._commit()
                self._control_points = []
                self._legs = []
                self._dense = None
            self._mode = mode
            self.last_error = None
        self._notify()

    def retry_snap(self) -> None:
        """Re-issue the snap for the current control points immediately."""
        with self._lock:
            if self._mode is not EditorMode.ROAD_SNAP:
                return
            self.last_error = None
            self._request_snap()
            if self._adapter is not None:
                self._adapter.flush()
        self._notify()

    def dismiss_error(self) -> None:
        self.last_error = None
        self._notify()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no snap is pending or in flight."""
        if self._adapter is None:
            return True
        return self._adapter.wait_idle(timeout)

    def close(self) -> None:
        """Stop the snap worker; the draft is left as it is."""
        if self._adapter is not None:
            self._adapter.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_control_index(self, index: int) -> None:
        if not 0 <= index < len(self._control_points):
            raise IndexOutOfRange(
                f"Control point index {index} outside 0..{len(self._control_points) - 1}"
            )

    def _open_start(self) -> int:
        """Index of the first control point of the open leg."""
        return self._legs[-1].control_end if self._legs else 0

    def _controls_changed(self, index: int) -> None:
        kept = [leg for leg in self._legs if leg.control_end < index]
        if len(kept) != len(self._legs):
            _logger.info(
                "Control point %d edited; reopened %d leg(s)", index, len(self._legs) - len(kept)
            )
            self._legs = kept
        self._controls_dirty = True
        self._dense = None
        self._request_snap()

    def _request_snap(self) -> None:
        open_points = self._control_points[self._open_start():]
        if len(open_points) < 2:
            if self._adapter is not None:
                self._adapter.cancel()
            self._snap_generation = None
            self._apply_route(open_points if not self._legs else [])
            return
        profile = profile_for_discipline(self.active_discipline)
        self._snap_generation = self._adapter.schedule(  # type: ignore[union-attr]
            open_points, profile
        )

    def _close_leg(self, tag: str):
        open_count = len(self._control_points) - self._open_start()
        if open_count < 2:
            raise InvalidSegment(f"Segment {tag!r} needs at least one new control point")
        if self._dense is None or len(self._dense) < 2:
            raise InvalidSegment(f"Segment {tag!r} cannot close before its road-snap finishes")
        self._legs.append(_Leg(tag, len(self._control_points) - 1, self._dense))
        self._dense = None
        self._apply_route([])
        return self._route.segments[-1]

    def _seed_controls(self) -> None:
        waypoints = self._route.waypoints
        limit = max(2, self._max_points)
        controls: list[Waypoint] = []
        legs: list[_Leg] = []
        start = 0
        for seg in self._route.segments:
            path = waypoints[seg.start_index:seg.end_index + 1]
            part = geometry.downsample(path, limit)
            controls.extend(part[1:] if controls else part)
            legs.append(_Leg(seg.discipline, len(controls) - 1, path))
            start = seg.end_index
        tail = waypoints[start:]
        if tail:
            part = geometry.downsample(tail, limit)
            controls.extend(part[1:] if controls else part)
        self._control_points = controls
        self._legs = legs
        self._dense = tail if len(tail) >= 2 else None

    def _apply_route(self, open_path: list[Waypoint]) -> None:
        """Write closed legs plus *open_path* to the draft and re-tag the legs."""
        points, ends = join_paths([leg.path for leg in self._legs] + [open_path])
        self._route.clear_segments()
        self._route.set_waypoints(points)
        for leg, end in zip(self._legs, ends):
            self._route.add_segment_tag(leg.discipline, end)

    def _commit(self) -> None:
        if not self._controls_dirty:
            return
        if self._dense is not None:
            open_path = self._dense
        else:
            open_path = self._control_points[self._open_start():]
            if self._legs and len(open_path) < 2:
                open_path = []
        self._apply_route(open_path)
        _logger.debug("Committed %d waypoints from road-snap mode", len(self._route))

    def _on_snap_result(self, dense: list[Waypoint], generation: int) -> None:
        with self._lock:
            if self._mode is not EditorMode.ROAD_SNAP or generation != self._snap_generation:
                _logger.debug("Ignoring snap result for generation %d", generation)
                return
            self._dense = list(dense)
            self._apply_route(self._dense)
            self.last_error = None
        self._notify()

    def _on_snap_error(self, error: RoutingServiceError, generation: int) -> None:
        with self._lock:
            if generation != self._snap_generation:
                return
            self.last_error = error
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
