"""RouteEditor — free-draw editing, segment transitions and road-snap mode."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from race_route.editor.editor import EditorMode, RouteEditor
from race_route.editor.snap import SnapState
from race_route.errors import IndexOutOfRange, InvalidSegment, RoutingServiceError
from race_route.route.models import Segment, Waypoint
from race_route.route.route import Route


def densify(points, profile):
    """Fake road geometry: a midpoint between every pair of control points."""
    out = [points[0]]
    for a, b in zip(points, points[1:]):
        out.append(Waypoint((a[0] + b[0]) / 2 + 0.001, (a[1] + b[1]) / 2))
        out.append(b)
    return out


@pytest.fixture
def client():
    c = MagicMock()
    c.snap.side_effect = densify
    return c


@pytest.fixture
def snap_editor(client):
    editor = RouteEditor(snap_client=client, debounce_s=0.05)
    yield editor
    editor.close()


# ---------------------------------------------------------------------------
# Free-draw
# ---------------------------------------------------------------------------

def test_click_appends_and_updates_distance():
    editor = RouteEditor()
    editor.click((0.0, 0.0))
    assert editor.distance == 0.0
    editor.click((0.0, 1.0))
    assert len(editor.route) == 2
    assert editor.distance == pytest.approx(69.09, abs=0.01)


def test_drag_end_moves_point():
    editor = RouteEditor(Route([(0.0, 0.0), (0.0, 1.0)]))
    editor.drag_end(1, (0.0, 2.0))
    assert editor.route.waypoints[1] == (0.0, 2.0)


def test_drag_end_bad_index():
    editor = RouteEditor(Route([(0.0, 0.0)]))
    with pytest.raises(IndexOutOfRange):
        editor.drag_end(3, (0.0, 2.0))


def test_right_click_inserts_into_nearest_segment():
    editor = RouteEditor(Route([(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]))
    idx = editor.right_click((0.01, 1.5))
    assert idx == 2
    assert editor.route.waypoints[2] == (0.01, 1.5)


def test_remove_point():
    editor = RouteEditor(Route([(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]))
    assert editor.remove_point(1) == (0.0, 1.0)
    assert len(editor.route) == 2


def test_undo_pops_last_and_is_noop_when_empty():
    editor = RouteEditor()
    calls = []
    editor.subscribe(calls.append)

    editor.undo()
    assert calls == []

    editor.click((0.0, 0.0))
    editor.click((0.0, 1.0))
    editor.undo()
    assert editor.route.waypoints == [(0.0, 0.0)]
    assert len(calls) == 3


def test_clear_all_resets_everything():
    route = Route([(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)], discipline_type="triathlon")
    editor = RouteEditor(route)
    editor.set_segment_transition()
    editor.add_milestone(10, "ten")

    editor.clear_all()

    assert len(editor.route) == 0
    assert editor.route.segments == []
    assert editor.route.milestones == []
    assert editor.next_discipline == "swim"
    assert editor.distance == 0.0


def test_subscribe_and_unsubscribe():
    editor = RouteEditor()
    calls = []
    unsubscribe = editor.subscribe(calls.append)
    editor.click((0.0, 0.0))
    unsubscribe()
    editor.click((0.0, 1.0))
    assert calls == [editor]


def test_unsubscribe_twice_is_harmless():
    editor = RouteEditor()
    calls = []
    unsubscribe = editor.subscribe(calls.append)
    unsubscribe()
    unsubscribe()
    editor.click((0.0, 0.0))
    assert calls == []


def test_add_milestone_on_draft():
    editor = RouteEditor(Route([(0.0, 0.0), (0.0, 1.0)]))
    m = editor.add_milestone(0.0, "Start")
    assert m.position == (0.0, 0.0)


# ---------------------------------------------------------------------------
# Segment transitions
# ---------------------------------------------------------------------------

def test_triathlon_transition_cycle():
    editor = RouteEditor(Route(discipline_type="triathlon"))
    for lng in range(3):
        editor.click((0.0, float(lng)))
    assert editor.active_discipline == "swim"
    editor.set_segment_transition()
    assert editor.next_discipline == "bike"

    editor.click((0.0, 3.0))
    editor.set_segment_transition()
    editor.click((0.0, 4.0))
    editor.set_segment_transition()

    assert editor.route.segments == [
        Segment("swim", 0, 2),
        Segment("bike", 2, 3),
        Segment("run", 3, 4),
    ]
    assert editor.next_discipline is None
    assert editor.active_discipline == "run"
    with pytest.raises(InvalidSegment):
        editor.set_segment_transition()


def test_transition_without_new_points_rejected():
    editor = RouteEditor(Route([(0.0, 0.0), (0.0, 1.0)], discipline_type="triathlon"))
    editor.set_segment_transition()
    with pytest.raises(InvalidSegment):
        editor.set_segment_transition()
    assert editor.next_discipline == "bike"


def test_transition_on_empty_draft():
    editor = RouteEditor(Route(discipline_type="triathlon"))
    with pytest.raises(IndexOutOfRange):
        editor.set_segment_transition()


def test_explicit_discipline_transition():
    editor = RouteEditor(Route([(0.0, 0.0), (0.0, 1.0)], discipline_type="triathlon"))
    editor.set_segment_transition("bike")
    assert editor.route.segments == [Segment("bike", 0, 1)]
    assert editor.next_discipline == "run"


def test_free_draw_cycle_rewinds_when_segments_are_dropped():
    editor = RouteEditor(Route([(0.0, float(i)) for i in range(4)], discipline_type="triathlon"))
    editor.set_segment_transition()
    assert editor.next_discipline == "bike"
    editor.remove_point(1)
    assert editor.route.segments == []
    assert editor.next_discipline == "swim"


def test_single_discipline_active_discipline():
    editor = RouteEditor(Route(discipline_type="bike"))
    assert editor.active_discipline == "bike"


# ---------------------------------------------------------------------------
# Road-snap mode
# ---------------------------------------------------------------------------

def test_road_snap_needs_client():
    editor = RouteEditor()
    with pytest.raises(RuntimeError):
        editor.set_mode(EditorMode.ROAD_SNAP)
    assert editor.mode is EditorMode.FREE_DRAW


def test_road_snap_click_produces_dense_path(snap_editor, client):
    snap_editor.set_mode(EditorMode.ROAD_SNAP)
    snap_editor.click((0.0, 0.0))
    assert snap_editor.route.waypoints == [(0.0, 0.0)]

    snap_editor.click((0.0, 1.0))
    assert snap_editor.wait_idle(timeout=2.0)

    assert snap_editor.control_points == [(0.0, 0.0), (0.0, 1.0)]
    assert len(snap_editor.route) == 3
    assert client.snap.call_args.args[1] == "foot"
    assert snap_editor.snap_state is SnapState.IDLE


def test_road_snap_commits_dense_path_on_exit(snap_editor):
    snap_editor.set_mode(EditorMode.ROAD_SNAP)
    snap_editor.click((0.0, 0.0))
    snap_editor.click((0.0, 1.0))
    snap_editor.click((0.0, 2.0))
    assert snap_editor.wait_idle(timeout=2.0)

    snap_editor.set_mode(EditorMode.FREE_DRAW)
    assert len(snap_editor.route) == 5
    assert snap_editor.control_points == []


def test_road_snap_rapid_clicks_send_one_request(client):
    editor = RouteEditor(snap_client=client, debounce_s=0.3)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        for lng in range(5):
            editor.click((0.0, float(lng)))
        assert editor.wait_idle(timeout=3.0)
    finally:
        editor.close()
    assert client.snap.call_count == 1
    assert len(client.snap.call_args.args[0]) == 5


def test_road_snap_seeds_control_points_from_draft(client):
    route = Route([(0.0, i * 0.1) for i in range(60)])
    editor = RouteEditor(route, snap_client=client, max_points=10)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        controls = editor.control_points
        assert len(controls) == 10
        assert controls[0] == route.waypoints[0]
        assert controls[-1] == route.waypoints[-1]

        # Toggling back without edits leaves the draft alone.
        editor.set_mode(EditorMode.FREE_DRAW)
    finally:
        editor.close()
    assert len(editor.route) == 60
    client.snap.assert_not_called()


def test_road_snap_error_keeps_route_and_commits_raw_points(snap_editor, client):
    snap_editor.set_mode(EditorMode.ROAD_SNAP)
    snap_editor.click((0.0, 0.0))
    snap_editor.click((0.0, 1.0))
    assert snap_editor.wait_idle(timeout=2.0)
    snapped = snap_editor.route.waypoints

    client.snap.side_effect = RoutingServiceError("No route", code="NoRoute")
    snap_editor.click((0.0, 2.0))
    assert snap_editor.wait_idle(timeout=2.0)

    assert snap_editor.last_error is not None
    assert snap_editor.last_error.code == "NoRoute"
    assert snap_editor.route.waypoints == snapped

    snap_editor.set_mode(EditorMode.FREE_DRAW)
    assert snap_editor.route.waypoints == [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]


def test_retry_snap_after_error(snap_editor, client):
    client.snap.side_effect = RoutingServiceError("Routing service timed out", code="Timeout")
    snap_editor.set_mode(EditorMode.ROAD_SNAP)
    snap_editor.click((0.0, 0.0))
    snap_editor.click((0.0, 1.0))
    assert snap_editor.wait_idle(timeout=2.0)
    assert snap_editor.last_error is not None

    client.snap.side_effect = densify
    snap_editor.retry_snap()
    assert snap_editor.wait_idle(timeout=2.0)
    assert snap_editor.last_error is None
    assert len(snap_editor.route) == 3


def test_swim_leg_is_not_routed(client):
    editor = RouteEditor(Route(discipline_type="triathlon"), snap_client=client, debounce_s=0.05)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        editor.click((0.0, 0.0))
        editor.click((0.0, 1.0))
        assert editor.wait_idle(timeout=2.0)
    finally:
        editor.close()
    client.snap.assert_not_called()
    assert editor.route.waypoints == [(0.0, 0.0), (0.0, 1.0)]


def test_road_snap_undo_and_remove(snap_editor):
    snap_editor.set_mode(EditorMode.ROAD_SNAP)
    for lng in range(3):
        snap_editor.click((0.0, float(lng)))
    snap_editor.remove_point(0)
    snap_editor.undo()
    assert snap_editor.control_points == [(0.0, 1.0)]
    assert snap_editor.route.waypoints == [(0.0, 1.0)]
    with pytest.raises(IndexOutOfRange):
        snap_editor.remove_point(5)


# ---------------------------------------------------------------------------
# Road-snap legs
# ---------------------------------------------------------------------------

@pytest.fixture
def tri_editor(client):
    editor = RouteEditor(Route(discipline_type="triathlon"), snap_client=client, debounce_s=0.05)
    editor.set_mode(EditorMode.ROAD_SNAP)
    yield editor
    editor.close()


def draw_swim_leg(editor):
    editor.click((0.0, 0.0))
    editor.click((0.0, 1.0))
    assert editor.wait_idle(timeout=2.0)
    return editor.set_segment_transition()


def test_swim_tag_survives_bike_leg_snap(tri_editor, client):
    assert draw_swim_leg(tri_editor) == Segment("swim", 0, 1)
    assert tri_editor.next_discipline == "bike"

    tri_editor.click((0.0, 2.0))
    assert tri_editor.wait_idle(timeout=2.0)

    # Only the open leg is routed, with the bike profile.
    assert client.snap.call_args.args == ([(0.0, 1.0), (0.0, 2.0)], "bike")
    assert len(tri_editor.route) == 4
    assert tri_editor.route.segments == [Segment("swim", 0, 1)]
    assert tri_editor.route.discipline_at(0) == "swim"


def test_road_snap_triathlon_commits_every_leg(tri_editor):
    draw_swim_leg(tri_editor)
    tri_editor.click((0.0, 2.0))
    assert tri_editor.wait_idle(timeout=2.0)
    tri_editor.set_segment_transition()
    tri_editor.click((0.0, 3.0))
    assert tri_editor.wait_idle(timeout=2.0)
    tri_editor.set_segment_transition()

    tri_editor.set_mode(EditorMode.FREE_DRAW)

    route = tri_editor.route
    assert route.segments == [
        Segment("swim", 0, 1),
        Segment("bike", 1, 3),
        Segment("run", 3, 5),
    ]
    assert route.waypoints[-1] == (0.0, 3.0)
    assert tri_editor.next_discipline is None


def test_road_snap_transition_waits_for_snap(client):
    editor = RouteEditor(Route(discipline_type="triathlon"), snap_client=client, debounce_s=10.0)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        editor.click((0.0, 0.0))
        editor.click((0.0, 1.0))
        with pytest.raises(InvalidSegment, match="road-snap"):
            editor.set_segment_transition()
        assert editor.next_discipline == "swim"
    finally:
        editor.close()


def test_road_snap_transition_needs_new_control_point(tri_editor):
    draw_swim_leg(tri_editor)
    with pytest.raises(InvalidSegment):
        tri_editor.set_segment_transition()
    assert tri_editor.next_discipline == "bike"


def test_editing_inside_a_closed_leg_reopens_it(tri_editor, client):
    draw_swim_leg(tri_editor)
    tri_editor.click((0.0, 2.0))
    assert tri_editor.wait_idle(timeout=2.0)

    tri_editor.drag_end(0, (0.5, 0.0))
    assert tri_editor.next_discipline == "swim"
    assert tri_editor.wait_idle(timeout=2.0)

    assert tri_editor.route.segments == []
    assert tri_editor.route.waypoints == [(0.5, 0.0), (0.0, 1.0), (0.0, 2.0)]


def test_undo_past_a_leg_end_reopens_it(tri_editor):
    draw_swim_leg(tri_editor)
    tri_editor.undo()
    assert tri_editor.next_discipline == "swim"
    assert tri_editor.control_points == [(0.0, 0.0)]


def test_entering_road_snap_keeps_existing_segments(client):
    route = Route([(0.0, float(i)) for i in range(7)], discipline_type="triathlon")
    route.add_segment_tag("swim", 2)
    route.add_segment_tag("bike", 4)
    editor = RouteEditor(route, snap_client=client, debounce_s=0.05)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        assert editor.control_points == route.waypoints
        assert editor.next_discipline == "run"

        editor.click((0.0, 7.0))
        assert editor.wait_idle(timeout=2.0)
        editor.set_mode(EditorMode.FREE_DRAW)
    finally:
        editor.close()

    assert client.snap.call_args.args == (
        [(0.0, 4.0), (0.0, 5.0), (0.0, 6.0), (0.0, 7.0)],
        "foot",
    )
    assert editor.route.segments == [Segment("swim", 0, 2), Segment("bike", 2, 4)]
    assert editor.route.waypoints[:5] == route.waypoints[:5]


# ---------------------------------------------------------------------------
# Stale snap results
# ---------------------------------------------------------------------------

def test_late_result_for_older_points_is_ignored(client):
    editor = RouteEditor(snap_client=client, debounce_s=10.0)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        editor.click((0.0, 0.0))
        editor.click((0.0, 1.0))
        old_generation = editor._snap_generation
        editor.click((0.0, 2.0))

        # A result for the two-point set lands after the third click.
        editor._on_snap_result(densify([(0.0, 0.0), (0.0, 1.0)], "foot"), old_generation)

        editor.set_mode(EditorMode.FREE_DRAW)
    finally:
        editor.close()

    assert editor.route.waypoints == [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]


def test_late_error_for_older_points_is_ignored(client):
    editor = RouteEditor(snap_client=client, debounce_s=10.0)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        editor.click((0.0, 0.0))
        editor.click((0.0, 1.0))
        old_generation = editor._snap_generation
        editor.click((0.0, 2.0))
        editor._on_snap_error(RoutingServiceError("timeout"), old_generation)
        assert editor.last_error is None
    finally:
        editor.close()


def test_result_after_leaving_road_snap_is_ignored(client):
    editor = RouteEditor(snap_client=client, debounce_s=10.0)
    try:
        editor.set_mode(EditorMode.ROAD_SNAP)
        editor.click((0.0, 0.0))
        editor.click((0.0, 1.0))
        generation = editor._snap_generation
        editor.set_mode(EditorMode.FREE_DRAW)
        editor._on_snap_result([(5.0, 5.0), (6.0, 6.0)], generation)
    finally:
        editor.close()

    assert editor.route.waypoints == [(0.0, 0.0), (0.0, 1.0)]
