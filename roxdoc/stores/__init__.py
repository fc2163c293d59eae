"""Persistent stores used by roxdoc runs."""

from .topic_store import TopicStore

__all__ = ["TopicStore"]
