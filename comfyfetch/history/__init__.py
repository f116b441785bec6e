"""Download history persistence."""

from .store import HistoryStore

__all__ = ["HistoryStore"]
