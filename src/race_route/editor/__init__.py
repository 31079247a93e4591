"""Route authoring: the editor state machine and road-snapping."""

from race_route.editor.editor import EditorMode, RouteEditor
from race_route.editor.routing_client import OSRMRoutingClient
from race_route.editor.snap import (
    RoadSnapAdapter,
    SnapState,
    join_paths,
    profile_for_discipline,
    snap_route,
)

__all__ = [
    "EditorMode",
    "OSRMRoutingClient",
    "RoadSnapAdapter",
    "RouteEditor",
    "SnapState",
    "join_paths",
    "profile_for_discipline",
    "snap_route",
]
