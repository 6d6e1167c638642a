"""Unit tests for configuration loading and cached settings."""

from pathlib import Path

import pytest
import yaml
from pubsub import pub

from dictato.config import CONFIG_CHANGED_TOPIC, DictatoConfig, RuntimeSettings


@pytest.fixture
def config_file(temp_data_dir):
    path = Path(temp_data_dir) / "dictato.yaml"
    path.write_text(yaml.safe_dump({
        "audio": {"mic_id": "USB Mic", "max_recording_seconds": 120},
        "storage": {"data_directory": "data", "history_size": 10},
        "llm": {"model": "llama3", "timeout_seconds": 5},
        "logging": {"level": "DEBUG", "file_path": "logs/dictato.log"},
    }), encoding="utf-8")
    return path


@pytest.mark.unit
class TestDictatoConfig:

    def test_loads_yaml(self, config_file):
        config = DictatoConfig(str(config_file))

        assert config.get("audio.mic_id") == "USB Mic"
        assert config.get("audio.missing", "fallback") == "fallback"

    def test_relative_paths_resolved_against_file(self, config_file):
        config = DictatoConfig(str(config_file))

        assert config.get("storage.data_directory") == str(config_file.parent / "data")
        assert config.get("logging.file_path") == str(config_file.parent / "logs/dictato.log")
        assert config.get_dictionary_path() == str(config_file.parent / "data" / "dictionary.json")

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            DictatoConfig(str(Path(temp_data_dir) / "nope.yaml"))

    def test_empty_file(self, temp_data_dir):
        path = Path(temp_data_dir) / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValueError):
            DictatoConfig(str(path))

    def test_malformed_file(self, temp_data_dir):
        path = Path(temp_data_dir) / "bad.yaml"
        path.write_text("audio: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError):
            DictatoConfig(str(path))

    def test_settings_values_and_defaults(self, config_file):
        settings = DictatoConfig(str(config_file)).settings()

        assert settings.mic_id == "USB Mic"
        assert settings.max_recording_seconds == 120.0
        assert settings.history_size == 10
        assert settings.llm_model == "llama3"
        assert settings.llm_timeout_seconds == 5.0
        assert settings.log_level == "DEBUG"
        assert settings.level_interval_ms == 33
        assert settings.api_port == 4800
        assert settings.llm_url == "http://localhost:11434/api"

    def test_settings_cached_until_set(self, config_file):
        config = DictatoConfig(str(config_file))
        first = config.settings()

        assert config.settings() is first

        config.set("audio.mic_id", "Built-in Mic")
        second = config.settings()

        assert second is not first
        assert second.mic_id == "Built-in Mic"

    def test_set_publishes_change(self, config_file):
        config = DictatoConfig(str(config_file))
        received = []

        def listener(key_path):
            received.append(key_path)

        pub.subscribe(listener, CONFIG_CHANGED_TOPIC)
        try:
            config.set("llm.model", "mistral")
        finally:
            pub.unsubscribe(listener, CONFIG_CHANGED_TOPIC)

        assert received == ["llm.model"]

    def test_set_creates_sections(self):
        config = DictatoConfig()
        config.set("http_api.enabled", True)

        assert config.settings().api_enabled is True

    def test_save_round_trip(self, config_file):
        config = DictatoConfig(str(config_file))
        config.set("llm.model", "mistral")
        config.save()

        assert DictatoConfig(str(config_file)).get("llm.model") == "mistral"

    def test_from_dict(self, temp_data_dir):
        config = DictatoConfig.from_dict({"dictionary": {"file_path": "words.json"}},
                                         base_dir=temp_data_dir)

        assert config.get_dictionary_path() == str(Path(temp_data_dir) / "words.json")

    def test_default_settings(self):
        assert DictatoConfig().settings() == RuntimeSettings()

    def test_credentials_required(self):
        with pytest.raises(ValueError):
            DictatoConfig().get_credentials_path()
