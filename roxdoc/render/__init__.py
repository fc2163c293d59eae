"""Renderers for topic documents and the export list."""

from .namespace import ExportEntry, export_entries, render_namespace
from .rd import RdRenderer, render_topic, topic_filename

__all__ = [
    "ExportEntry",
    "RdRenderer",
    "export_entries",
    "render_namespace",
    "render_topic",
    "topic_filename",
]
