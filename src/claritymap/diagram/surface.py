"""Drawing surfaces the relationship diagram renders onto."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

LOGGER = logging.getLogger(__name__)

MAPPING_SURFACE_ID = "mappingCanvas"

SurfaceProvider = Callable[[str], Optional["Surface"]]


@dataclass(slots=True)
class Surface:
    """A bounded drawing area; ``items`` holds whatever was last drawn onto it."""

    id: str
    width: float
    height: float
    items: List[Any] = field(default_factory=list)

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    def mount(self, item: Any) -> None:
        self.items.append(item)

    def clear(self) -> None:
        self.items.clear()

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height


class SurfaceRegistry:
    """Default surface provider: steps register surfaces as their views are built."""

    def __init__(self, *, min_width: float = 0, min_height: float = 0) -> None:
        self._surfaces: Dict[str, Surface] = {}
        self._min_width = min_width
        self._min_height = min_height

    def register(self, surface_id: str, width: float, height: float) -> Surface:
        surface = self._surfaces.get(surface_id)
        if surface is None:
            surface = Surface(id=surface_id, width=width, height=height)
            self._surfaces[surface_id] = surface
        return surface

    def unregister(self, surface_id: str) -> None:
        self._surfaces.pop(surface_id, None)

    def __call__(self, surface_id: str) -> Optional[Surface]:
        surface = self._surfaces.get(surface_id)
        if surface is None:
            LOGGER.warning("Surface '%s' not found", surface_id)
            return None
        if surface.width < self._min_width or surface.height < self._min_height:
            LOGGER.warning(
                "Surface '%s' is too small for an interactive map (%sx%s)",
                surface_id,
                surface.width,
                surface.height,
            )
            return None
        return surface


__all__ = ["MAPPING_SURFACE_ID", "Surface", "SurfaceProvider", "SurfaceRegistry"]
