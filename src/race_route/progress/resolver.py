"""ProgressResolver — maps logged distance onto a route's geometry."""

from __future__ import annotations

from race_route.progress.models import ProgressRecord, ProgressView
from race_route.route import geometry
from race_route.route.route import Route


class ProgressResolver:
    """Produce a :class:`ProgressView` from a route and a progress record.

    Neither input is mutated, so one shared :class:`Route` can be resolved
    for many participants at once.
    """

    def resolve(self, route: Route, progress: ProgressRecord) -> ProgressView:
        cumulative = progress.cumulative_distance
        fraction = self.fraction(route.total_distance, cumulative)
        waypoints = route.waypoints

        completed, remaining = geometry.split_at_fraction(waypoints, fraction)
        return ProgressView(
            fraction=fraction,
            current_position=geometry.position_at_fraction(waypoints, fraction),
            completed_path=completed,
            remaining_path=remaining,
            percent_complete=round(fraction * 100, 1),
            milestones_reached=[m for m in route.milestones if m.mile <= cumulative],
            cumulative_distance=cumulative,
            distance_remaining=max(0.0, route.total_distance - cumulative),
        )

    @staticmethod
    def fraction(total: float, cumulative: float) -> float:
        """``cumulative / total`` clamped to [0, 1]; ``0.0`` for a zero-length route."""
        if total <= 0:
            return 0.0
        return min(1.0, max(0.0, cumulative / total))
