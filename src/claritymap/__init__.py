"""Clarity Map: a guided nine-step self-reflection journal."""

__version__ = "0.1.0"
