"""Persistence backends for repositories and analysis results."""

from .base import AnalysisStore
from .json_store import JsonStore
from .memory import InMemoryStore

__all__ = ["AnalysisStore", "InMemoryStore", "JsonStore"]
