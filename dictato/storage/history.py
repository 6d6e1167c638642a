"""Recent transcription history."""

import json
import logging
import threading
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """One delivered transcription."""
    id: int
    timestamp: float
    text: str


class HistoryStore:
    """Keeps the last ``max_entries`` transcriptions, newest first.

    With ``persist`` off the history lives only in memory.
    """

    def __init__(self, path: Union[str, Path], max_entries: int = 5, persist: bool = True):
        """Initialize history store.

        Args:
            path: JSON file holding the entries
            max_entries: Number of entries kept
            persist: Whether entries are written to ``path``
        """
        self.path = Path(path)
        self.max_entries = max_entries
        self.persist = persist
        self._lock = threading.Lock()
        self._entries: List[HistoryEntry] = self._load() if persist else []

    def _load(self) -> List[HistoryEntry]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return [HistoryEntry(**item) for item in data][:self.max_entries]
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading history {self.path}: {e}")
            return []

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump([asdict(entry) for entry in self._entries], f, indent=2, ensure_ascii=False)

    def add_transcription(self, text: str, timestamp: Optional[datetime] = None) -> HistoryEntry:
        """Record a transcription.

        Raises:
            OSError: If the history file cannot be written
        """
        with self._lock:
            next_id = (self._entries[0].id + 1) if self._entries else 1
            entry = HistoryEntry(
                id=next_id,
                timestamp=(timestamp or datetime.now()).timestamp(),
                text=text,
            )
            self._entries.insert(0, entry)
            del self._entries[self.max_entries:]
            if self.persist:
                self._save()
        logger.debug(f"History entry {entry.id} added")
        return entry

    def recent(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def last_text(self) -> Optional[str]:
        with self._lock:
            return self._entries[0].text if self._entries else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            if self.persist and self.path.exists():
                self.path.unlink()
