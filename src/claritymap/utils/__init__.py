"""Shared helpers."""

from .text import format_field_label, is_filled, parse_influence_text, truncate_text

__all__ = ["format_field_label", "is_filled", "parse_influence_text", "truncate_text"]
