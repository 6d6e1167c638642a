"""Unit tests for history and statistics stores."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from dictato.storage.history import HistoryStore
from dictato.storage.stats import StatsStore


@pytest.mark.unit
class TestHistoryStore:

    @pytest.fixture
    def history_path(self, temp_data_dir):
        return Path(temp_data_dir) / "history.json"

    def test_newest_first_and_trimmed(self, history_path):
        history = HistoryStore(history_path, max_entries=3)
        for i in range(5):
            history.add_transcription(f"text {i}")

        assert [entry.text for entry in history.recent()] == ["text 4", "text 3", "text 2"]
        assert history.last_text() == "text 4"

    def test_persisted_and_reloaded(self, history_path):
        history = HistoryStore(history_path)
        history.add_transcription("hello", timestamp=datetime(2024, 1, 1, 12, 0))

        reloaded = HistoryStore(history_path)

        assert reloaded.last_text() == "hello"
        assert json.loads(history_path.read_text(encoding="utf-8"))[0]["id"] == 1

    def test_ids_increase(self, history_path):
        history = HistoryStore(history_path)
        first = history.add_transcription("a")
        second = history.add_transcription("b")

        assert second.id == first.id + 1

    def test_memory_only_when_not_persisted(self, history_path):
        history = HistoryStore(history_path, persist=False)
        history.add_transcription("secret")

        assert history.last_text() == "secret"
        assert not history_path.exists()

    def test_clear(self, history_path):
        history = HistoryStore(history_path)
        history.add_transcription("a")
        history.clear()

        assert history.recent() == []
        assert not history_path.exists()

    def test_corrupt_file_starts_empty(self, history_path):
        history_path.write_text("not json", encoding="utf-8")
        assert HistoryStore(history_path).recent() == []


@pytest.mark.unit
class TestStatsStore:

    def test_accumulates_sessions(self, temp_data_dir):
        path = Path(temp_data_dir) / "stats.json"
        stats = StatsStore(path)
        stats.add_session(word_count=30, duration_seconds=20.0, size_bytes=1024 * 1024)
        stats.add_session(word_count=30, duration_seconds=40.0, size_bytes=1024 * 1024)

        summary = StatsStore(path).summary()

        assert summary["sessions"] == 2
        assert summary["words"] == 60
        assert summary["duration_seconds"] == pytest.approx(60.0)
        assert summary["words_per_minute"] == 60.0
        assert summary["total_size_mb"] == 2.0

    def test_empty_summary(self, temp_data_dir):
        summary = StatsStore(Path(temp_data_dir) / "stats.json").summary()

        assert summary["sessions"] == 0
        assert summary["words_per_minute"] == 0.0
