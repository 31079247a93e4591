"""Route modeling: waypoints, geometry kernel, segments and milestones."""

from race_route.route.geometry import (
    nearest_segment_insert_index,
    position_at_fraction,
    segment_lengths,
    split_at_fraction,
    total_distance,
)
from race_route.route.models import Milestone, Segment, Waypoint
from race_route.route.route import Route

__all__ = [
    "Milestone",
    "Route",
    "Segment",
    "Waypoint",
    "nearest_segment_insert_index",
    "position_at_fraction",
    "segment_lengths",
    "split_at_fraction",
    "total_distance",
]
