"""Relationship diagram: layout, dragging and the static fallback."""

from .layout import Connection, DiagramData, DiagramElement, RelationshipDiagram
from .surface import MAPPING_SURFACE_ID, Surface, SurfaceRegistry

__all__ = [
    "Connection",
    "DiagramData",
    "DiagramElement",
    "MAPPING_SURFACE_ID",
    "RelationshipDiagram",
    "Surface",
    "SurfaceRegistry",
]
