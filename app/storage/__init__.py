"""SQLite persistence primitives."""

from .database import Database

__all__ = ["Database"]
