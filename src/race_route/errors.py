"""Exception taxonomy shared by the route, progress and editor packages."""

from __future__ import annotations


class RouteEngineError(Exception):
    """Base class for every error raised by :mod:`race_route`."""


class IndexOutOfRange(RouteEngineError, IndexError):
    """A waypoint, control-point or segment index is outside current bounds."""


class InvalidSegment(RouteEngineError, ValueError):
    """A segment tag would overlap or precede an existing segment."""


class DegenerateRoute(RouteEngineError, ValueError):
    """The route has fewer than 2 waypoints where path geometry is required."""


class ProgressError(RouteEngineError, ValueError):
    """A progress action is not allowed in the record's current state."""


class NotFound(RouteEngineError, LookupError):
    """A route or progress record does not exist in the store."""


class RoutingServiceError(RouteEngineError):
    """The external routing service failed, timed out, or found no route.

    Always retryable: the draft route is never modified by a failed snap.
    """

    retryable = True

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code
