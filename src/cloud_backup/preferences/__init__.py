"""Persisted backup preferences."""

from .base import Preferences
from .json_file import JsonPreferences
from .memory import MemoryPreferences

__all__ = ["Preferences", "MemoryPreferences", "JsonPreferences"]
