"""Unit tests for the command line entry point."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from dictato import main as main_module
from dictato.config import DictatoConfig


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(temp_data_dir):
    path = Path(temp_data_dir) / "dictato.yaml"
    path.write_text(yaml.safe_dump({
        "storage": {"data_directory": "data"},
        "dictionary": {"file_path": "data/dictionary.json"},
        "logging": {"file_path": "logs/dictato.log", "console_output": False},
    }), encoding="utf-8")
    return path


@pytest.fixture
def api_config_path(temp_data_dir):
    credentials = Path(temp_data_dir) / "credentials.json"
    credentials.write_text("{}", encoding="utf-8")
    path = Path(temp_data_dir) / "dictato.yaml"
    path.write_text(yaml.safe_dump({
        "storage": {"data_directory": "data"},
        "dictionary": {"file_path": "data/dictionary.json"},
        "logging": {"file_path": "logs/dictato.log", "console_output": False},
        "transcription": {"credentials_path": "credentials.json"},
        "http_api": {"enabled": True, "port": 4811},
    }), encoding="utf-8")
    return path


def _run(*argv):
    with patch("sys.argv", ["dictato", *argv]):
        main_module.main()


@pytest.mark.unit
class TestMain:

    def test_setup_logging_writes_file(self, temp_data_dir):
        log_path = Path(temp_data_dir) / "logs" / "app.log"
        config = DictatoConfig.from_dict({"logging": {"file_path": str(log_path),
                                                      "console_output": False}})

        main_module.setup_logging(config, "DEBUG")
        logging.getLogger("dictato.test").debug("hello log")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.DEBUG
        assert "hello log" in log_path.read_text()

    def test_list_mics(self, mock_pyaudio, capsys):
        _run("--list-mics")

        assert "Test Microphone" in capsys.readouterr().out
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_import_then_export_dictionary(self, config_path, temp_data_dir):
        words_file = Path(temp_data_dir) / "words.txt"
        words_file.write_text("Ollama\nTauri\n", encoding="utf-8")
        export_file = Path(temp_data_dir) / "export.txt"

        _run("--config", str(config_path), "--import-dictionary", str(words_file))
        _run("--config", str(config_path), "--export-dictionary", str(export_file))

        stored = json.loads((config_path.parent / "data" / "dictionary.json").read_text())
        assert stored == {"ollama": ["english", "french"], "tauri": ["english", "french"]}
        assert export_file.read_text(encoding="utf-8") == "ollama\ntauri"

    def test_invalid_dictionary_exits_nonzero(self, config_path, temp_data_dir):
        words_file = Path(temp_data_dir) / "words.txt"
        words_file.write_text("bad-word\n", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            _run("--config", str(config_path), "--import-dictionary", str(words_file))
        assert exc_info.value.code == 1

    def test_missing_credentials_exits_nonzero(self, config_path, sample_audio_file):
        with pytest.raises(SystemExit) as exc_info:
            _run("--config", str(config_path), "--transcribe", sample_audio_file)
        assert exc_info.value.code == 1

    def test_print_result_without_speech(self, capsys):
        from dictato.models.transcription import PipelineResult

        main_module.print_result(PipelineResult.empty())

        assert "No speech detected" in capsys.readouterr().out

    def test_serve_does_not_start_background_api(self, api_config_path):
        with patch.object(main_module, "EngineSlot"), \
                patch.object(main_module, "BackgroundServer") as background, \
                patch.object(main_module, "run_server") as run_server:
            _run("--config", str(api_config_path), "--serve")

        background.assert_not_called()
        run_server.assert_called_once()
        assert run_server.call_args.kwargs["port"] == 4811

    def test_background_api_started_when_enabled(self, api_config_path):
        with patch.object(main_module, "EngineSlot"), \
                patch.object(main_module, "BackgroundServer") as background:
            app = main_module.Application(str(api_config_path))
            app.init()
            app.cleanup()

        background.assert_called_once()
        assert background.call_args.kwargs["port"] == 4811
        background.return_value.start.assert_called_once()
        background.return_value.stop.assert_called_once()

    def test_port_in_use_exits_nonzero(self, api_config_path):
        with patch.object(main_module, "EngineSlot"), \
                patch.object(main_module, "run_server",
                             side_effect=OSError(98, "Address already in use")):
            with pytest.raises(SystemExit) as exc_info:
                _run("--config", str(api_config_path), "--serve")
        assert exc_info.value.code == 1
