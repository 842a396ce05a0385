"""Radial node-and-line diagram of the influences around the journal focus."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from ..utils.text import parse_influence_text, truncate_text
from .surface import MAPPING_SURFACE_ID, Surface, SurfaceProvider

LOGGER = logging.getLogger(__name__)

RADIUS = 120.0
FOCUS_SIZE = (150.0, 60.0)
INFLUENCE_SIZE = (100.0, 50.0)
PATTERN_SIZE = (120.0, 50.0)
PATTERN_OFFSET = (140.0, -100.0)
POSITIVE_BASE_ANGLE = -90.0
NEGATIVE_BASE_ANGLE = 90.0
LABEL_MAX_LENGTH = 50
DEFAULT_FOCUS_TEXT = "Your Focus"
RESTING_SCALE = 1.0
DRAG_SCALE = 1.1
RESTING_Z = 10
DRAG_Z = 100

CONNECTION_COLORS = {
    "positive": "primary",
    "negative": "negative",
    "pattern": "secondary",
}
DEFAULT_CONNECTION_COLOR = "border"

INSTRUCTIONS = "Drag the colored elements to explore connections. The center represents your focus area."
FALLBACK_CAPTION = "This is a visual representation of your system connections."


@dataclass(slots=True)
class DiagramData:
    """Free-text inputs the diagram is generated from."""

    focus_text: str = ""
    positive_items_text: str = ""
    negative_items_text: str = ""
    pattern_text: str = ""

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "DiagramData":
        """Read the mapping step's field identifiers."""

        def _text(key: str) -> str:
            value = values.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            focus_text=_text("mapFocus"),
            positive_items_text=_text("mapEnergyGivers"),
            negative_items_text=_text("mapEnergyDrainers"),
            pattern_text=_text("mapPattern"),
        )


@dataclass(slots=True)
class DiagramElement:
    id: str
    display_text: str
    category: str
    x: float
    y: float
    width: float
    height: float
    draggable: bool = True
    scale: float = RESTING_SCALE
    z_index: int = RESTING_Z

    @property
    def position(self) -> Tuple[float, float]:
        return self.x, self.y

    @property
    def size(self) -> Tuple[float, float]:
        return self.width, self.height

    def contains(self, x: float, y: float) -> bool:
        return abs(x - self.x) <= self.width / 2 and abs(y - self.y) <= self.height / 2


@dataclass(slots=True)
class Connection:
    from_element_id: str
    to_element_id: str
    category: str
    color: str = DEFAULT_CONNECTION_COLOR
    x: float = 0.0
    y: float = 0.0
    length: float = 0.0
    angle: float = 0.0


@dataclass(slots=True)
class _DragState:
    element: DiagramElement
    offset: Tuple[float, float] = field(default=(0.0, 0.0))


def connection_color(category: str) -> str:
    return CONNECTION_COLORS.get(category, DEFAULT_CONNECTION_COLOR)


def radial_positions(count: int, center: Tuple[float, float], base_angle: float) -> List[Tuple[float, float]]:
    """Place ``count`` points evenly on the fixed radius, clockwise from ``base_angle`` degrees."""
    cx, cy = center
    step = 360.0 / max(count, 1)
    positions = []
    for index in range(count):
        radians = math.radians(base_angle + index * step)
        positions.append((cx + math.cos(radians) * RADIUS, cy + math.sin(radians) * RADIUS))
    return positions


class RelationshipDiagram:
    """Lays out, draws and drags the influence map on a surface."""

    def __init__(self, surface_provider: SurfaceProvider, *, surface_id: str = MAPPING_SURFACE_ID) -> None:
        self._surface_provider = surface_provider
        self._surface_id = surface_id
        self.surface: Optional[Surface] = None
        self.elements: List[DiagramElement] = []
        self.connections: List[Connection] = []
        self.fallback_lines: List[str] = []
        self._drag: Optional[_DragState] = None

    @property
    def interactive(self) -> bool:
        return self.surface is not None and bool(self.elements)

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate(self, data: DiagramData | Mapping[str, Any]) -> bool:
        """Build the diagram; returns ``False`` when the static fallback was used."""
        if not isinstance(data, DiagramData):
            data = DiagramData.from_mapping(data)

        self._drag = None
        self.elements = []
        self.connections = []
        self.fallback_lines = []

        surface = self._surface_provider(self._surface_id)
        if surface is None:
            self.surface = None
            self.fallback_lines = self.render_fallback(data)
            return False

        self.surface = surface
        surface.clear()
        self._layout(data, surface)
        for element in self.elements:
            surface.mount(element)
        self._create_connections()
        surface.mount(INSTRUCTIONS)
        return True

    def _layout(self, data: DiagramData, surface: Surface) -> None:
        center = surface.center
        focus_width, focus_height = FOCUS_SIZE
        self.elements.append(
            DiagramElement(
                id="focus",
                display_text=truncate_text(data.focus_text or DEFAULT_FOCUS_TEXT, LABEL_MAX_LENGTH),
                category="focus",
                x=center[0],
                y=center[1],
                width=focus_width,
                height=focus_height,
                draggable=False,
            )
        )

        givers = parse_influence_text(data.positive_items_text)
        for index, (x, y) in enumerate(radial_positions(len(givers), center, POSITIVE_BASE_ANGLE)):
            self.elements.append(self._influence(f"giver-{index}", givers[index], "positive", x, y))

        drainers = parse_influence_text(data.negative_items_text)
        for index, (x, y) in enumerate(radial_positions(len(drainers), center, NEGATIVE_BASE_ANGLE)):
            self.elements.append(self._influence(f"drainer-{index}", drainers[index], "negative", x, y))

        pattern = (data.pattern_text or "").strip()
        if pattern:
            width, height = PATTERN_SIZE
            self.elements.append(
                DiagramElement(
                    id="pattern",
                    display_text=truncate_text(pattern, LABEL_MAX_LENGTH),
                    category="pattern",
                    x=center[0] + PATTERN_OFFSET[0],
                    y=center[1] + PATTERN_OFFSET[1],
                    width=width,
                    height=height,
                )
            )

    @staticmethod
    def _influence(element_id: str, text: str, category: str, x: float, y: float) -> DiagramElement:
        width, height = INFLUENCE_SIZE
        return DiagramElement(
            id=element_id,
            display_text=truncate_text(text, LABEL_MAX_LENGTH),
            category=category,
            x=x,
            y=y,
            width=width,
            height=height,
        )

    def _create_connections(self) -> None:
        focus = self.focus_element
        if focus is None:
            return
        for element in self.elements:
            if element.category == "focus":
                continue
            connection = Connection(
                from_element_id=element.id,
                to_element_id=focus.id,
                category=element.category,
                color=connection_color(element.category),
            )
            self._update_geometry(connection)
            self.connections.append(connection)
            if self.surface is not None:
                self.surface.mount(connection)

    def _update_geometry(self, connection: Connection) -> None:
        source = self.get_element(connection.from_element_id)
        target = self.get_element(connection.to_element_id)
        if source is None or target is None:
            return
        dx = target.x - source.x
        dy = target.y - source.y
        connection.x = source.x
        connection.y = source.y
        connection.length = math.hypot(dx, dy)
        connection.angle = math.atan2(dy, dx)

    def refresh_connections(self) -> None:
        for connection in self.connections:
            self._update_geometry(connection)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @property
    def focus_element(self) -> Optional[DiagramElement]:
        for element in self.elements:
            if element.category == "focus":
                return element
        return None

    def get_element(self, element_id: str) -> Optional[DiagramElement]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def element_at(self, x: float, y: float) -> Optional[DiagramElement]:
        for element in sorted(self.elements, key=lambda item: item.z_index, reverse=True):
            if element.contains(x, y):
                return element
        return None

    # ------------------------------------------------------------------
    # Dragging
    # ------------------------------------------------------------------
    def pointer_down(self, x: float, y: float) -> bool:
        element = self.element_at(x, y)
        if element is None or not element.draggable:
            return False
        self._drag = _DragState(element=element, offset=(x - element.x, y - element.y))
        element.scale = DRAG_SCALE
        element.z_index = DRAG_Z
        return True

    def pointer_move(self, x: float, y: float) -> bool:
        if self._drag is None or self.surface is None:
            return False
        element = self._drag.element
        offset_x, offset_y = self._drag.offset
        half_width = element.width / 2
        half_height = element.height / 2
        new_x = max(half_width, min(self.surface.width - half_width, x - offset_x))
        new_y = max(half_height, min(self.surface.height - half_height, y - offset_y))
        element.x = new_x
        element.y = new_y
        self.refresh_connections()
        return True

    def pointer_up(self) -> None:
        if self._drag is not None:
            self._drag.element.scale = RESTING_SCALE
            self._drag.element.z_index = RESTING_Z
        self._drag = None

    def pointer_leave(self) -> None:
        self.pointer_up()

    def touch_start(self, x: float, y: float) -> bool:
        return self.pointer_down(x, y)

    def touch_move(self, x: float, y: float) -> bool:
        return self.pointer_move(x, y)

    def touch_end(self) -> None:
        self.pointer_up()

    def move_element(self, element_id: str, x: float, y: float) -> bool:
        """Drag ``element_id`` so its centre lands on ``(x, y)``, clamped to the surface."""
        element = self.get_element(element_id)
        if element is None or not element.draggable:
            return False
        self._drag = _DragState(element=element)
        element.scale = DRAG_SCALE
        element.z_index = DRAG_Z
        try:
            return self.pointer_move(x, y)
        finally:
            self.pointer_up()

    # ------------------------------------------------------------------
    # Surface lifecycle
    # ------------------------------------------------------------------
    def resize(self, width: float, height: float) -> None:
        if self.surface is None or not self.elements:
            return
        self.surface.resize(width, height)
        focus = self.focus_element
        if focus is not None:
            focus.x, focus.y = self.surface.center
        self.refresh_connections()

    def clear(self) -> None:
        if self.surface is not None:
            self.surface.clear()
        self.elements = []
        self.connections = []
        self.fallback_lines = []
        self._drag = None

    def export_as_image(self) -> bytes:
        raise NotImplementedError("Image export not yet implemented")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_fallback(self, data: DiagramData) -> List[str]:
        """Static, non-interactive summary used when no surface is available."""
        lines = [f"( {data.focus_text or DEFAULT_FOCUS_TEXT} )"]
        lines.extend(f"+ {item}" for item in parse_influence_text(data.positive_items_text))
        lines.extend(f"- {item}" for item in parse_influence_text(data.negative_items_text))
        pattern = (data.pattern_text or "").strip()
        if pattern:
            lines.append(f"Pattern: {pattern}")
        lines.append(FALLBACK_CAPTION)
        return lines

    def describe(self) -> List[str]:
        if self.surface is None:
            return list(self.fallback_lines)
        lines = [f"Map {self.surface.width:g}x{self.surface.height:g}"]
        for element in self.elements:
            handle = "" if element.draggable else " (fixed)"
            lines.append(
                f"  [{element.category}] {element.id}: {element.display_text!r} "
                f"at ({element.x:.0f}, {element.y:.0f}){handle}"
            )
        for connection in self.connections:
            lines.append(
                f"  {connection.from_element_id} -> {connection.to_element_id} "
                f"({connection.color}, length {connection.length:.0f}, "
                f"angle {math.degrees(connection.angle):.0f} deg)"
            )
        return lines


__all__ = [
    "Connection",
    "DiagramData",
    "DiagramElement",
    "FALLBACK_CAPTION",
    "INSTRUCTIONS",
    "RADIUS",
    "RelationshipDiagram",
    "connection_color",
    "radial_positions",
]
