"""Cumulative dictation statistics."""

import json
import logging
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)


@dataclass
class UsageStats:
    sessions: int = 0
    words: int = 0
    duration_seconds: float = 0.0
    bytes: int = 0


class StatsStore:
    """Accumulates word count, recorded time and audio volume per session."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._stats = self._load()

    def _load(self) -> UsageStats:
        if not self.path.exists():
            return UsageStats()
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return UsageStats(**json.load(f))
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading stats {self.path}: {e}")
            return UsageStats()

    def add_session(self, word_count: int, duration_seconds: float, size_bytes: int) -> UsageStats:
        """Add one transcription session.

        Raises:
            OSError: If the stats file cannot be written
        """
        with self._lock:
            self._stats.sessions += 1
            self._stats.words += word_count
            self._stats.duration_seconds += duration_seconds
            self._stats.bytes += size_bytes
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(asdict(self._stats), f, indent=2)
            return UsageStats(**asdict(self._stats))

    def summary(self) -> Dict[str, Any]:
        """Totals plus words-per-minute over recorded time."""
        with self._lock:
            stats = asdict(self._stats)
        minutes = stats["duration_seconds"] / 60.0
        stats["words_per_minute"] = round(stats["words"] / minutes, 1) if minutes > 0 else 0.0
        stats["total_size_mb"] = round(stats["bytes"] / (1024 * 1024), 2)
        return stats
