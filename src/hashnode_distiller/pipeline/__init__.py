"""Conversion pipeline: layouts, events, and the orchestrating Converter."""

from .events import EventEmitter
from .layouts import FlatLayout, NestedLayout, OutputLayout, create_layout
from .orchestrator import Converter, fallback_slug

__all__ = [
    "Converter",
    "EventEmitter",
    "FlatLayout",
    "NestedLayout",
    "OutputLayout",
    "create_layout",
    "fallback_slug",
]
