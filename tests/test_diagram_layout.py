from __future__ import annotations

import math

import pytest

from claritymap.diagram import DiagramData, RelationshipDiagram, SurfaceRegistry
from claritymap.diagram.layout import FALLBACK_CAPTION, INSTRUCTIONS, RADIUS, radial_positions


def _diagram(width: float = 600, height: float = 400) -> RelationshipDiagram:
    surfaces = SurfaceRegistry(min_width=320, min_height=240)
    surfaces.register("mappingCanvas", width, height)
    return RelationshipDiagram(surfaces)


FULL_DATA = DiagramData(
    focus_text="Feel less rushed",
    positive_items_text="music, friends, walks, sleep",
    negative_items_text="email, commute, noise, clutter",
    pattern_text="Saying yes to everything",
)


def test_full_map_has_ten_nodes_and_nine_connections() -> None:
    diagram = _diagram()
    assert diagram.generate(FULL_DATA)

    assert len(diagram.elements) == 10
    assert len(diagram.connections) == len(diagram.elements) - 1
    focus = diagram.focus_element
    assert focus is not None
    assert focus.position == (300, 200)
    assert not focus.draggable

    targets = {connection.to_element_id for connection in diagram.connections}
    sources = [connection.from_element_id for connection in diagram.connections]
    assert targets == {"focus"}
    assert sorted(sources) == sorted(element.id for element in diagram.elements if element.id != "focus")
    assert INSTRUCTIONS in diagram.surface.items


def test_connection_colours_follow_category() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)
    colours = {connection.from_element_id: connection.color for connection in diagram.connections}
    assert colours["giver-0"] == "primary"
    assert colours["drainer-0"] == "negative"
    assert colours["pattern"] == "secondary"


def test_radial_layout_uses_fixed_radius_and_base_angles() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)

    first_giver = diagram.get_element("giver-0")
    first_drainer = diagram.get_element("drainer-0")
    assert first_giver.x == pytest.approx(300)
    assert first_giver.y == pytest.approx(200 - RADIUS)
    assert first_drainer.x == pytest.approx(300)
    assert first_drainer.y == pytest.approx(200 + RADIUS)

    pattern = diagram.get_element("pattern")
    assert pattern.position == (440, 100)
    assert pattern.size == (120, 50)

    for x, y in radial_positions(3, (0, 0), 0):
        assert math.hypot(x, y) == pytest.approx(RADIUS)


def test_empty_inputs_produce_only_the_default_focus() -> None:
    diagram = _diagram()
    assert diagram.generate(DiagramData())
    assert [element.display_text for element in diagram.elements] == ["Your Focus"]
    assert diagram.connections == []


def test_long_labels_are_truncated() -> None:
    diagram = _diagram()
    diagram.generate(DiagramData(focus_text="f" * 80, positive_items_text="g" * 70))
    assert diagram.focus_element.display_text == "f" * 47 + "..."
    assert len(diagram.get_element("giver-0").display_text) == 50


def test_drag_moves_node_and_updates_its_connection() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)
    giver = diagram.get_element("giver-0")

    assert diagram.pointer_down(giver.x, giver.y)
    assert diagram.is_dragging
    assert giver.scale == 1.1
    assert diagram.pointer_move(100, 300)
    diagram.pointer_up()

    assert giver.position == (100, 300)
    assert giver.scale == 1.0
    assert not diagram.is_dragging
    connection = next(item for item in diagram.connections if item.from_element_id == "giver-0")
    assert connection.x == 100
    assert connection.length == pytest.approx(math.hypot(200, 100))
    assert connection.angle == pytest.approx(math.atan2(-100, 200))


def test_drag_is_clamped_inside_the_surface() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)

    assert diagram.move_element("drainer-1", -500, 5000)
    drainer = diagram.get_element("drainer-1")
    assert drainer.position == (50, 375)

    diagram.touch_start(drainer.x, drainer.y)
    diagram.touch_move(9999, -9999)
    diagram.touch_end()
    assert drainer.position == (550, 25)


def test_focus_node_cannot_be_dragged() -> None:
    diagram = _diagram()
    diagram.generate(DiagramData(focus_text="centre"))

    assert not diagram.pointer_down(300, 200)
    assert not diagram.move_element("focus", 10, 10)
    assert diagram.focus_element.position == (300, 200)


def test_pointer_leave_ends_drag() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)
    pattern = diagram.get_element("pattern")
    diagram.pointer_down(pattern.x, pattern.y)
    diagram.pointer_leave()
    assert not diagram.is_dragging
    assert not diagram.pointer_move(10, 10)


def test_resize_recentres_only_the_focus() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)
    giver_before = diagram.get_element("giver-0").position

    diagram.resize(800, 600)

    assert diagram.focus_element.position == (400, 300)
    assert diagram.get_element("giver-0").position == giver_before
    connection = next(item for item in diagram.connections if item.from_element_id == "giver-0")
    assert connection.length == pytest.approx(
        math.hypot(400 - giver_before[0], 300 - giver_before[1])
    )


def test_missing_surface_uses_static_fallback() -> None:
    diagram = RelationshipDiagram(SurfaceRegistry())
    assert diagram.generate(FULL_DATA) is False

    assert diagram.elements == []
    assert diagram.connections == []
    assert not diagram.interactive
    assert diagram.fallback_lines[0] == "( Feel less rushed )"
    assert "+ music" in diagram.fallback_lines
    assert "- clutter" in diagram.fallback_lines
    assert "Pattern: Saying yes to everything" in diagram.fallback_lines
    assert diagram.fallback_lines[-1] == FALLBACK_CAPTION
    assert diagram.describe() == diagram.fallback_lines


def test_too_small_surface_is_unavailable() -> None:
    diagram = _diagram(width=200, height=150)
    assert diagram.generate(FULL_DATA) is False
    assert diagram.fallback_lines


def test_mapping_values_feed_the_diagram() -> None:
    data = DiagramData.from_mapping(
        {"mapFocus": "rest", "mapEnergyGivers": "a, b", "mapEnergyDrainers": "c", "mapPattern": 7}
    )
    assert data.focus_text == "rest"
    assert data.positive_items_text == "a, b"
    assert data.negative_items_text == "c"
    assert data.pattern_text == ""


def test_clear_and_image_export() -> None:
    diagram = _diagram()
    diagram.generate(FULL_DATA)
    diagram.clear()
    assert diagram.elements == []
    assert diagram.surface.items == []

    with pytest.raises(NotImplementedError):
        diagram.export_as_image()


def test_blank_pattern_is_left_out_of_both_renderings() -> None:
    data = DiagramData(focus_text="rest", pattern_text="   ")

    diagram = _diagram()
    diagram.generate(data)
    assert diagram.get_element("pattern") is None

    fallback = RelationshipDiagram(SurfaceRegistry())
    fallback.generate(data)
    assert not any(line.startswith("Pattern:") for line in fallback.fallback_lines)
