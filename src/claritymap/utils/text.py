"""Small text helpers shared by the journal, the diagram and the exporters."""

from __future__ import annotations

import re
from typing import Any, List, Pattern

_CAPITAL_PATTERN: Pattern[str] = re.compile(r"([A-Z])")

MAX_INFLUENCE_ITEMS = 4


def format_field_label(key: str) -> str:
    """Turn a camelCase field identifier into a readable label (``wantMore`` -> ``Want More``)."""
    spaced = _CAPITAL_PATTERN.sub(r" \1", key or "")
    if spaced:
        spaced = spaced[0].upper() + spaced[1:]
    return spaced.strip()


def truncate_text(text: str | None, max_length: int) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def parse_influence_text(text: Any, *, limit: int = MAX_INFLUENCE_ITEMS) -> List[str]:
    """Split a comma-separated answer into at most ``limit`` trimmed, non-empty items."""
    if not text or not isinstance(text, str):
        return []
    items = [item.strip() for item in text.split(",")]
    return [item for item in items if item][:limit]


def is_filled(value: Any) -> bool:
    """Return ``True`` for non-blank strings, non-empty lists and ``True``."""
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    if isinstance(value, bool):
        return value
    return value is not None


__all__ = [
    "MAX_INFLUENCE_ITEMS",
    "format_field_label",
    "is_filled",
    "parse_influence_text",
    "truncate_text",
]
