"""YAML configuration loader and cached runtime settings for Dictato."""

import os
import yaml
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from pubsub import pub

logger = logging.getLogger(__name__)

CONFIG_CHANGED_TOPIC = "config.changed"

DEFAULT_LLM_PROMPT = (
    "You are a transcription corrector. Fix recognition mistakes in the text "
    "below without changing its meaning. Prefer these spellings when a word "
    "sounds similar: {{DICTIONARY}}.\n"
    "Return only the corrected text.\n\n"
    "{{TRANSCRIPT}}"
)


@dataclass(frozen=True)
class RuntimeSettings:
    """Snapshot of the settings read on hot paths."""
    mic_id: Optional[str] = None
    persist_history: bool = True
    history_size: int = 5
    max_recording_seconds: float = 300.0
    level_interval_ms: int = 33
    llm_url: str = "http://localhost:11434/api"
    llm_model: str = ""
    llm_prompt: str = DEFAULT_LLM_PROMPT
    llm_timeout_seconds: float = 30.0
    api_enabled: bool = False
    api_port: int = 4800
    log_level: str = "INFO"


class DictatoConfig:
    """Dictato configuration loader."""

    _PATH_KEYS = (
        'storage.data_directory',
        'logging.file_path',
        'transcription.credentials_path',
        'dictionary.file_path',
    )

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        self._lock = threading.Lock()
        self._settings: Optional[RuntimeSettings] = None

        if config_path is None:
            self.config_file = None
            self.config: Dict[str, Any] = {}
            self._resolve_paths(self.config, Path.cwd())
            return

        self.config_file = Path(config_path)
        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    @classmethod
    def from_dict(cls, values: Dict[str, Any], base_dir: Optional[str] = None) -> "DictatoConfig":
        """Build a configuration from an in-memory mapping."""
        config = cls()
        config.config = dict(values)
        config._resolve_paths(config.config, Path(base_dir) if base_dir else Path.cwd())
        return config

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        self._resolve_paths(config, self.config_file.parent)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any], config_dir: Path) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        for key_path in self._PATH_KEYS:
            section, key = key_path.split('.')
            if section in config and isinstance(config[section], dict) and key in config[section]:
                value = config[section][key]
                if value and not os.path.isabs(value):
                    config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'llm.model').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Invalidates the cached runtime settings and announces the change on
        the ``config.changed`` topic.
        """
        keys = key_path.split('.')
        with self._lock:
            config_dict = self.config
            for key in keys[:-1]:
                if key not in config_dict or not isinstance(config_dict[key], dict):
                    config_dict[key] = {}
                config_dict = config_dict[key]
            config_dict[keys[-1]] = value
            self._settings = None
        logger.debug(f"Configuration key '{key_path}' set to: {value}")
        pub.sendMessage(CONFIG_CHANGED_TOPIC, key_path=key_path)

    def save(self) -> None:
        """Write the current configuration back to its YAML file."""
        if self.config_file is None:
            raise ValueError("Configuration has no backing file")
        with open(self.config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.config, f, sort_keys=False)
        logger.info(f"Configuration saved to: {self.config_file}")

    def settings(self) -> RuntimeSettings:
        """Cached settings snapshot, rebuilt only after ``set()``."""
        with self._lock:
            if self._settings is None:
                self._settings = self._build_settings()
            return self._settings

    def _build_settings(self) -> RuntimeSettings:
        defaults = RuntimeSettings()
        return RuntimeSettings(
            mic_id=self.get('audio.mic_id', defaults.mic_id),
            persist_history=bool(self.get('storage.persist_history', defaults.persist_history)),
            history_size=int(self.get('storage.history_size', defaults.history_size)),
            max_recording_seconds=float(
                self.get('audio.max_recording_seconds', defaults.max_recording_seconds)),
            level_interval_ms=int(self.get('audio.level_interval_ms', defaults.level_interval_ms)),
            llm_url=self.get('llm.url', defaults.llm_url),
            llm_model=self.get('llm.model', defaults.llm_model) or "",
            llm_prompt=self.get('llm.prompt', defaults.llm_prompt),
            llm_timeout_seconds=float(self.get('llm.timeout_seconds', defaults.llm_timeout_seconds)),
            api_enabled=bool(self.get('http_api.enabled', defaults.api_enabled)),
            api_port=int(self.get('http_api.port', defaults.api_port)),
            log_level=str(self.get('logging.level', defaults.log_level)),
        )

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    def get_dictionary_path(self) -> str:
        """Get dictionary JSON path, defaulting to the data directory."""
        path = self.get('dictionary.file_path')
        if path:
            return str(Path(path).absolute())
        return str(Path(self.get_data_directory()) / "dictionary.json")

    def get_credentials_path(self) -> str:
        """Get transcription credentials path - CRASHES if not found."""
        creds_path = self.get('transcription.credentials_path')
        if not creds_path:
            raise ValueError("Transcription credentials path not configured")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Transcription credentials file not found: {creds_path}")

        return str(creds_file.absolute())
