"""Main application entry point for Dictato."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import pyaudio
from pubsub import pub
from rich.console import Console
from rich.table import Table

from .audio.audio_pub import EventPublisher
from .audio.capture import AudioCapture
from .audio.devices import DeviceCache, list_microphones
from .config import CONFIG_CHANGED_TOPIC, DictatoConfig
from .dictionary.phonetic import PhoneticDictionaryMatcher
from .dictionary.store import Dictionary, DictionaryStore
from .errors import DictatoError
from .formatting.rules import FormattingSettings
from .http_api.server import BackgroundServer, create_app, run_server
from .models.transcription import EngineParams, PipelineResult
from .services.pipeline_service import PipelineOrchestrator
from .services.recording_service import RecordingService
from .storage.history import HistoryStore
from .storage.stats import StatsStore
from .transcription.engine_slot import EngineSlot
from .transcription.google_engine import GoogleSpeechEngine
from .transcription.ollama_refiner import refiner_from_settings

logger = logging.getLogger(__name__)

console = Console()


class Application:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = DictatoConfig(config_path)
        # Command line level wins over the config file
        level = log_level or self.config.settings().log_level
        setup_logging(self.config, level)

        self.publisher = EventPublisher()
        self.dictionary_store = DictionaryStore(self.config.get_dictionary_path())
        self.dictionary = Dictionary(self.dictionary_store.load())
        self.recording_service: Optional[RecordingService] = None
        self.pipeline: Optional[PipelineOrchestrator] = None
        self.engine: Optional[EngineSlot] = None
        self.api_server: Optional[BackgroundServer] = None

    def init(self, start_api: bool = True) -> None:
        """Wire the services; ``start_api`` runs the HTTP endpoint in the background."""
        logger.info("Initializing services...")
        settings = self.config.settings()
        data_dir = Path(self.config.get_data_directory())
        data_dir.mkdir(parents=True, exist_ok=True)

        params = EngineParams(
            language=self.config.get('transcription.language', 'en-US'),
            request_timeout=float(self.config.get('transcription.request_timeout', 30.0)),
        )
        self.engine = EngineSlot(GoogleSpeechEngine, self.config.get_credentials_path(), params)
        refiner = refiner_from_settings(settings)

        self.pipeline = PipelineOrchestrator(
            engine=self.engine,
            dictionary=self.dictionary,
            matcher=PhoneticDictionaryMatcher(),
            refiner=refiner,
            formatting_provider=lambda: FormattingSettings.from_config(
                self.config.get('formatting.rules')),
            history=HistoryStore(data_dir / "history.json",
                                 max_entries=settings.history_size,
                                 persist=settings.persist_history),
            stats=StatsStore(data_dir / "stats.json"),
            publisher=self.publisher,
        )

        device_cache = DeviceCache()
        device_cache.init_in_background(settings.mic_id)
        capture = AudioCapture(
            device_cache=device_cache,
            level_callback=self.publisher.publish_level,
            limit_callback=self.publisher.publish_limit_reached,
            max_duration_seconds=settings.max_recording_seconds,
            level_interval_seconds=settings.level_interval_ms / 1000.0,
        )
        self.recording_service = RecordingService(
            self.config, capture, self.pipeline,
            refiner=refiner, publisher=self.publisher,
        )
        pub.subscribe(self.recording_service.on_config_changed, CONFIG_CHANGED_TOPIC)

        if settings.api_enabled and start_api:
            self.api_server = BackgroundServer(create_app(self.pipeline), port=settings.api_port)
            self.api_server.start()

        logger.info(f"Services ready (llm={'on' if refiner else 'off'}, "
                    f"max recording {settings.max_recording_seconds:.0f}s)")

    def record(self, duration: int, use_llm: bool = False) -> Dict[str, Any]:
        """Record for ``duration`` seconds, or until the cap is reached."""
        started = self.recording_service.start_recording(use_llm=use_llm)
        if not started["success"]:
            return started

        deadline = time.monotonic() + duration
        with console.status(f"Recording for {duration}s..."):
            while time.monotonic() < deadline and not self.recording_service.limit_reached:
                time.sleep(0.1)
        if self.recording_service.limit_reached:
            console.print("Recording limit reached", style="yellow")

        with console.status("Processing..."):
            return self.recording_service.stop_recording()

    def transcribe_file(self, wav_path: str, use_llm: bool = False) -> PipelineResult:
        self.engine.preload()
        return self.pipeline.process_recording(wav_path, bypass_llm=not use_llm)

    def serve(self) -> None:
        self.engine.preload()
        run_server(create_app(self.pipeline), port=self.config.settings().api_port)

    def cleanup(self) -> None:
        if self.recording_service is not None:
            self.recording_service.cleanup()
        if self.api_server is not None:
            self.api_server.stop()
        if self.engine is not None:
            self.engine.unload()


def setup_logging(config: DictatoConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/dictato.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Dictato application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def print_result(result: PipelineResult) -> None:
    if not result.final_text:
        console.print("No speech detected", style="yellow")
        return

    table = Table(show_header=False, box=None)
    table.add_row("Raw", result.raw_text)
    if result.corrected_text != result.raw_text:
        table.add_row("Dictionary", result.corrected_text)
    if result.llm_applied:
        table.add_row("LLM", result.refined_text)
    table.add_row("Final", f"[bold green]{result.final_text}[/bold green]")
    table.add_row("Stats", f"{result.word_count} words, {result.duration_seconds:.1f}s, "
                           f"{result.size_bytes / 1024:.0f} KB")
    console.print(table)


def print_microphones() -> None:
    pa = pyaudio.PyAudio()
    try:
        names = list_microphones(pa)
    finally:
        pa.terminate()
    if not names:
        console.print("No input devices found", style="bold red")
        return
    for name in names:
        console.print(f"  {name}")


def main() -> None:
    """Main entry point for Dictato application."""
    parser = argparse.ArgumentParser(
        description="Dictato - voice dictation with dictionary and LLM correction"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--auto",
        action="store_true",
        help="Record for --duration seconds, process the recording, then exit"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Duration in seconds for auto mode recording (default: 10)"
    )

    parser.add_argument(
        "--llm",
        action="store_true",
        help="Refine the transcription with the configured language model"
    )

    parser.add_argument(
        "--transcribe",
        type=str,
        metavar="FILE",
        help="Run the pipeline on an existing WAV file"
    )

    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP transcription endpoint in the foreground"
    )

    parser.add_argument(
        "--list-mics",
        action="store_true",
        help="List input devices and exit"
    )

    parser.add_argument(
        "--import-dictionary",
        type=str,
        metavar="FILE",
        help="Add words from a newline-delimited file to the dictionary"
    )

    parser.add_argument(
        "--export-dictionary",
        type=str,
        metavar="FILE",
        help="Write dictionary words to a file, one per line"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Dictato v0.1.0"
    )

    args = parser.parse_args()

    if args.list_mics:
        print_microphones()
        return

    app = None
    try:
        app = Application(args.config, args.log_level)

        if args.import_dictionary:
            words = app.dictionary_store.import_words(args.import_dictionary)
            app.dictionary.set(words)
            app.publisher.publish_dictionary_updated()
            console.print(f"Dictionary now has {len(words)} words", style="green")
            return
        if args.export_dictionary:
            count = app.dictionary_store.export_words(args.export_dictionary)
            console.print(f"Exported {count} words to {args.export_dictionary}", style="green")
            return

        # --serve binds the API port itself
        app.init(start_api=not args.serve)
        if args.transcribe:
            print_result(app.transcribe_file(args.transcribe, use_llm=args.llm))
        elif args.serve:
            app.serve()
        elif args.auto:
            outcome = app.record(args.duration, use_llm=args.llm)
            if not outcome["success"]:
                console.print(f"Recording failed: {outcome['error']}", style="bold red")
                sys.exit(1)
            print_result(outcome["result"])
        else:
            parser.print_help()
    except KeyboardInterrupt:
        console.print("\nGoodbye!", style="bold blue")
    except (DictatoError, OSError, ValueError) as e:
        console.print(f"Error: {e}", style="bold red")
        logger.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        if app is not None:
            app.cleanup()


if __name__ == "__main__":
    main()
