"""History and statistics persistence."""

from .history import HistoryEntry, HistoryStore
from .stats import StatsStore, UsageStats

__all__ = ["HistoryEntry", "HistoryStore", "StatsStore", "UsageStats"]
