"""Geometry kernel: distances, interpolation and insertion over waypoint sequences.

All functions are pure.  Coordinates are decimal degrees; every trigonometric
step works in radians; every distance is in miles.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from race_route.route.models import Waypoint

EARTH_RADIUS_MI = 3958.8

_EPS = 1e-12


def haversine_mi(a: Waypoint, b: Waypoint) -> float:
    """Great-circle distance between *a* and *b* in miles."""
    phi1 = math.radians(a[0])
    phi2 = math.radians(b[0])
    dphi = math.radians(b[0] - a[0])
    dlmb = math.radians(b[1] - a[1])

    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    # Rounding can push s a hair outside [0, 1] for near-antipodal points.
    s = min(1.0, max(0.0, s))
    return 2 * EARTH_RADIUS_MI * math.atan2(math.sqrt(s), math.sqrt(1 - s))


def segment_lengths(waypoints: Sequence[Waypoint]) -> list[float]:
    """Distance of each consecutive pair.  Empty for fewer than 2 waypoints."""
    return [haversine_mi(waypoints[i - 1], waypoints[i]) for i in range(1, len(waypoints))]


def total_distance(waypoints: Sequence[Waypoint]) -> float:
    """Sum of :func:`segment_lengths`; ``0.0`` for fewer than 2 waypoints."""
    return float(sum(segment_lengths(waypoints)))


def cumulative_distances(waypoints: Sequence[Waypoint]) -> list[float]:
    """Running distance from the start at every waypoint (first entry is ``0.0``)."""
    if not waypoints:
        return []
    result = [0.0]
    for seg in segment_lengths(waypoints):
        result.append(result[-1] + seg)
    return result


def _interpolate(a: Waypoint, b: Waypoint, t: float) -> Waypoint:
    """Point a fraction *t* of the way from *a* to *b* along the great circle.

    Falls back to linear lat/lng interpolation when the arc is too short (or
    too close to antipodal) for the spherical formula to be stable.
    """
    phi1, lmb1 = math.radians(a[0]), math.radians(a[1])
    phi2, lmb2 = math.radians(b[0]), math.radians(b[1])
    delta = haversine_mi(a, b) / EARTH_RADIUS_MI
    sin_delta = math.sin(delta)
    if sin_delta < _EPS:
        return Waypoint(a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]))

    wa = math.sin((1 - t) * delta) / sin_delta
    wb = math.sin(t * delta) / sin_delta
    x = wa * math.cos(phi1) * math.cos(lmb1) + wb * math.cos(phi2) * math.cos(lmb2)
    y = wa * math.cos(phi1) * math.sin(lmb1) + wb * math.cos(phi2) * math.sin(lmb2)
    z = wa * math.sin(phi1) + wb * math.sin(phi2)
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lng = math.degrees(math.atan2(y, x))
    return Waypoint(lat, lng)


def _locate(waypoints: Sequence[Waypoint], fraction: float) -> tuple[int, Waypoint]:
    """Return ``(segment_index, point)`` for an interior *fraction* of the path.

    Zero-length segments are skipped, so they can never bracket the target.
    """
    lengths = segment_lengths(waypoints)
    target = sum(lengths) * fraction
    accum = 0.0
    for i, seg in enumerate(lengths):
        if seg <= 0.0:
            continue
        if accum + seg >= target:
            t = (target - accum) / seg
            return i, _interpolate(waypoints[i], waypoints[i + 1], t)
        accum += seg
    return len(waypoints) - 2, Waypoint.of(waypoints[-1])


def position_at_fraction(waypoints: Sequence[Waypoint], fraction: float) -> Waypoint | None:
    """Return the point lying *fraction* of the way along the path.

    ``fraction <= 0`` gives the first waypoint and ``fraction >= 1`` the last.
    With fewer than 2 waypoints the result is best-effort: the single
    waypoint, or ``None`` for an empty sequence.
    """
    if not waypoints:
        return None
    if len(waypoints) < 2 or fraction <= 0:
        return Waypoint.of(waypoints[0])
    if fraction >= 1:
        return Waypoint.of(waypoints[-1])
    return _locate(waypoints, fraction)[1]


def split_at_fraction(
    waypoints: Sequence[Waypoint], fraction: float
) -> tuple[list[Waypoint], list[Waypoint]]:
    """Partition the path into ``(completed, remaining)`` at *fraction*.

    Both halves share the split point: ``completed[-1] == remaining[0]``.
    ``fraction <= 0`` gives ``([], waypoints)``; ``fraction >= 1`` (or fewer
    than 2 waypoints) gives ``(waypoints, [])``.
    """
    points = [Waypoint.of(p) for p in waypoints]
    if len(points) < 2 or fraction >= 1:
        return points, []
    if fraction <= 0:
        return [], points

    idx, mid = _locate(points, fraction)
    completed = points[: idx + 1] + [mid]
    remaining = [mid] + points[idx + 1:]
    return completed, remaining


def _point_segment_distance(p: Waypoint, a: Waypoint, b: Waypoint) -> float:
    """Planar distance from *p* to the closest point on segment *a*–*b*.

    Longitudes are scaled by ``cos(lat)`` of *p* (equirectangular projection)
    and the projection parameter is clamped to ``[0, 1]``.
    """
    k = math.cos(math.radians(p[0]))
    px, py = p[1] * k, p[0]
    ax, ay = a[1] * k, a[0]
    bx, by = b[1] * k, b[0]
    dx, dy = bx - ax, by - ay
    seg_sq = dx * dx + dy * dy
    if seg_sq == 0.0:
        return math.hypot(px - ax, py - ay)
    t = ((px - ax) * dx + (py - ay) * dy) / seg_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


def nearest_segment_insert_index(waypoints: Sequence[Waypoint], point: Waypoint) -> int:
    """Index at which *point* should be inserted to join its nearest segment.

    For the closest segment ``(i, i + 1)`` the result is ``i + 1``; ties keep
    the earliest segment.  With fewer than 2 waypoints the point is appended.
    """
    if len(waypoints) < 2:
        return len(waypoints)
    best_dist = math.inf
    insert_idx = 1
    for i in range(len(waypoints) - 1):
        dist = _point_segment_distance(point, waypoints[i], waypoints[i + 1])
        if dist < best_dist:
            best_dist = dist
            insert_idx = i + 1
    return insert_idx


def downsample(points: Sequence[Waypoint], limit: int) -> list[Waypoint]:
    """Reduce *points* to at most *limit*, keeping both endpoints.

    Interior points are picked on an even stride through the sequence.
    """
    if limit < 2:
        raise ValueError("limit must be >= 2")
    n = len(points)
    if n <= limit:
        return [Waypoint.of(p) for p in points]
    step = (n - 1) / (limit - 1)
    return [Waypoint.of(points[round(i * step)]) for i in range(limit)]


def bounding_box(waypoints: Sequence[Waypoint]) -> tuple[float, float, float, float] | None:
    """Return ``(min_lat, min_lng, max_lat, max_lng)``, or ``None`` when empty."""
    if not waypoints:
        return None
    lats = [p[0] for p in waypoints]
    lngs = [p[1] for p in waypoints]
    return (min(lats), min(lngs), max(lats), max(lngs))
