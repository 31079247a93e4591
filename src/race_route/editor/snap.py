"""RoadSnapAdapter — debounced, single-flight road-snapping of control points."""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections.abc import Callable, Sequence

from race_route.errors import RoutingServiceError
from race_route.route import geometry
from race_route.route.models import MULTI_DISCIPLINE, Waypoint
from race_route.route.route import Route

_logger = logging.getLogger(__name__)

PROFILE_BY_DISCIPLINE: dict[str, str | None] = {
    "run": "foot",
    "walk": "foot",
    "bike": "bike",
    "swim": None,
}
"""Routing profile per discipline.  ``None`` means straight-line pass-through."""


def profile_for_discipline(discipline: str | None) -> str | None:
    """Map a discipline onto the nearest routing profile.

    Swimming has no on-road profile: it maps to ``None`` and the control
    points are used as-is.  Unknown disciplines route on foot.
    """
    if discipline is None:
        return "foot"
    return PROFILE_BY_DISCIPLINE.get(discipline, "foot")


def join_paths(paths: Sequence[Sequence[Waypoint]]) -> tuple[list[Waypoint], list[int]]:
    """Concatenate leg paths, merging a shared junction point.

    Returns the joined path and the index of each leg's last point in it.
    """
    points: list[Waypoint] = []
    ends: list[int] = []
    for path in paths:
        if points and path and path[0] == points[-1]:
            points.extend(path[1:])
        else:
            points.extend(path)
        ends.append(len(points) - 1)
    return points, ends


def snap_route(route: Route, client, max_points: int = 25) -> tuple[Route, int]:
    """Road-snap a whole stored route, one segment at a time.

    Every segment is routed with its own discipline's profile and re-tagged
    on the dense path.  Swim segments, and the untagged tail of a route that
    has segments, keep their points.  An untagged triathlon has no profile to
    route with and is kept as-is.

    Returns the snapped copy and the number of legs actually routed.

    Raises:
        RoutingServiceError: The routing service failed for some leg.
    """
    waypoints = route.waypoints
    segments = route.segments
    legs: list[tuple[str | None, list[Waypoint]]] = [
        (seg.discipline, waypoints[seg.start_index:seg.end_index + 1]) for seg in segments
    ]
    start = segments[-1].end_index if segments else 0
    tail = waypoints[start:]
    if len(tail) >= 2:
        legs.append((None if segments else route.discipline_type, tail))

    paths: list[list[Waypoint]] = []
    routed = 0
    for discipline, path in legs:
        if discipline is None or discipline == MULTI_DISCIPLINE:
            profile = None
        else:
            profile = profile_for_discipline(discipline)
        if profile is None:
            paths.append(path)
            continue
        request_points = geometry.downsample(path, max_points)
        paths.append([Waypoint.of(p) for p in client.snap(request_points, profile)])
        routed += 1
        _logger.info("Snapped %s leg: %d -> %d points", discipline, len(path), len(paths[-1]))

    points, ends = join_paths(paths)
    snapped = route.copy()
    snapped.clear_segments()
    snapped.set_waypoints(points)
    for seg, end in zip(segments, ends):
        snapped.add_segment_tag(seg.discipline, end)
    return snapped, routed


class SnapState(enum.Enum):
    IDLE = "idle"
    SNAPPING = "snapping"


class RoadSnapAdapter:
    """Turns sparse control points into a dense road-following path.

    A single background worker serves one editing session.  Every call to
    :meth:`schedule` replaces the pending control-point set and restarts the
    debounce timer; the worker only fires once the timer expires, so at most
    one request is ever in flight and it always carries the newest set.  A
    result whose control points were superseded while the request was in
    flight is dropped.

    :meth:`schedule` returns a generation token and both callbacks receive the
    token of the request they answer.  The adapter checks the token before
    calling back, but a newer :meth:`schedule` can still land between that
    check and the callback, so owners compare the token against the one they
    last scheduled.

    Parameters
    ----------
    client:
        Object with ``snap(points, profile) -> list[Waypoint]``, e.g.
        :class:`~race_route.editor.routing_client.OSRMRoutingClient`.
    on_result:
        Called with ``(dense_path, generation)`` after a successful snap.
    on_error:
        Called with ``(RoutingServiceError, generation)`` after a failed snap.
    debounce_s:
        Quiet period after the last change before a request is issued.
    max_points:
        Control points are downsampled (endpoints kept) above this count.
    """

    def __init__(
        self,
        client,
        on_result: Callable[[list[Waypoint], int], None],
        on_error: Callable[[RoutingServiceError, int], None] | None = None,
        debounce_s: float = 0.45,
        max_points: int = 25,
    ) -> None:
        self._client = client
        self._on_result = on_result
        self._on_error = on_error
        self._debounce_s = debounce_s
        self._max_points = max_points

        self._cond = threading.Condition()
        self._pending: tuple[list[Waypoint], str | None] | None = None
        self._deadline = 0.0
        self._generation = 0
        self._in_flight = False
        self._closed = False
        self._thread = threading.Thread(target=self._run, daemon=True, name="RoadSnapWorker")
        self._thread.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SnapState:
        with self._cond:
            busy = self._pending is not None or self._in_flight
        return SnapState.SNAPPING if busy else SnapState.IDLE

    def schedule(self, points: Sequence[Waypoint], profile: str | None) -> int:
        """Queue a snap of *points*, restarting the debounce timer.

        Returns the generation token its result will carry.
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("RoadSnapAdapter is closed")
            self._generation += 1
            self._pending = ([Waypoint.of(p) for p in points], profile)
            self._deadline = time.monotonic() + self._debounce_s
            self._cond.notify_all()
            return self._generation

    def flush(self) -> None:
        """Fire the pending snap now instead of waiting for the debounce."""
        with self._cond:
            if self._pending is not None:
                self._deadline = time.monotonic()
                self._cond.notify_all()

    def cancel(self) -> None:
        """Drop the pending snap and discard any in-flight result."""
        with self._cond:
            self._generation += 1
            self._pending = None
            self._cond.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is pending or in flight.  Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._in_flight, timeout
            )

    def close(self) -> None:
        """Stop the worker thread."""
        with self._cond:
            self._closed = True
            self._pending = None
            self._generation += 1
            self._cond.notify_all()
        self._thread.join(timeout=2.0)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._closed:
                    if self._pending is None:
                        self._cond.wait()
                        continue
                    remaining = self._deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if self._closed:
                    return
                points, profile = self._pending  # type: ignore[misc]
                generation = self._generation
                self._pending = None
                self._in_flight = True

            try:
                self._execute(points, profile, generation)
            finally:
                with self._cond:
                    self._in_flight = False
                    self._cond.notify_all()

    def _execute(self, points: list[Waypoint], profile: str | None, generation: int) -> None:
        result: list[Waypoint] | None = None
        error: RoutingServiceError | None = None
        try:
            result = self._snap(points, profile)
        except RoutingServiceError as exc:
            error = exc
        except Exception as exc:
            _logger.exception("Unexpected road-snap failure")
            error = RoutingServiceError(f"Road-snap failed: {exc}")

        with self._cond:
            current = generation == self._generation
        if not current:
            _logger.debug("Discarding superseded snap result (generation %d)", generation)
            return

        if error is not None:
            _logger.warning("Road-snap failed: %s", error)
            if self._on_error is not None:
                self._on_error(error, generation)
        else:
            self._on_result(result, generation)  # type: ignore[arg-type]

    def _snap(self, points: list[Waypoint], profile: str | None) -> list[Waypoint]:
        if profile is None or len(points) < 2:
            return list(points)
        request_points = geometry.downsample(points, self._max_points)
        if len(request_points) < len(points):
            _logger.info(
                "Downsampled %d control points to %d", len(points), len(request_points)
            )
        return [Waypoint.of(p) for p in self._client.snap(request_points, profile)]
