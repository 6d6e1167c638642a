"""Recording lifecycle: one capture slot, then the processing pipeline."""

import logging
import threading
import time
from typing import Any, Dict, Optional

from ..audio.audio_pub import EventPublisher
from ..audio.capture import AudioCapture
from ..audio.recordings import ensure_recordings_dir, generate_unique_wav_name, remove_recording
from ..config import DictatoConfig
from ..errors import CaptureIOError, DeviceError, TranscriptionError
from ..transcription.ollama_refiner import OllamaRefiner
from .pipeline_service import PipelineOrchestrator

logger = logging.getLogger(__name__)


class RecordingService:
    """Starts and stops captures and hands finished recordings to the pipeline.

    At most one capture is active; a start request while one is running is
    rejected, not queued.
    """

    def __init__(self,
                 config: DictatoConfig,
                 capture: AudioCapture,
                 pipeline: PipelineOrchestrator,
                 refiner: Optional[OllamaRefiner] = None,
                 publisher: Optional[EventPublisher] = None,
                 recordings_dir: Optional[str] = None):
        """Initialize recording service.

        Args:
            config: Application configuration
            capture: Audio capture bound to the shared device cache
            pipeline: Processing pipeline for finished recordings
            refiner: Warmed up when an LLM recording starts
            publisher: UI notifications
            recordings_dir: Base directory for temporary recordings
        """
        self.config = config
        self.capture = capture
        self.pipeline = pipeline
        self.refiner = refiner
        self.publisher = publisher
        self.recordings_dir = ensure_recordings_dir(recordings_dir)

        self._slot_lock = threading.Lock()
        self._active_session: Optional[str] = None
        self._use_llm = False
        self._limit_reached = threading.Event()

        logger.info("RecordingService ready")

    @property
    def is_recording(self) -> bool:
        with self._slot_lock:
            return self._active_session is not None

    @property
    def limit_reached(self) -> bool:
        return self._limit_reached.is_set()

    def start_recording(self, use_llm: bool = False) -> Dict[str, Any]:
        """Start a recording.

        Args:
            use_llm: Run language-model refinement on this recording

        Returns:
            Result dictionary with success status and details
        """
        with self._slot_lock:
            if self._active_session is not None:
                logger.warning("Already recording")
                return {
                    "success": False,
                    "error": "Already recording",
                    "session_id": self._active_session,
                }
            session_id = f"{time.strftime('%Y%m%d_%H%M%S')}_{int(time.time() * 1000) % 1000:03d}"
            self._active_session = session_id

        self._use_llm = use_llm
        if use_llm and self.refiner is not None:
            self.refiner.warmup_in_background()

        path = self.recordings_dir / generate_unique_wav_name()
        self.capture.max_duration_seconds = self.config.settings().max_recording_seconds
        try:
            session = self.capture.start(None, path, self._limit_reached, session_id=session_id)
        except (DeviceError, CaptureIOError) as e:
            logger.error(f"Failed to initialize recorder: {e}")
            self._release_slot()
            return {"success": False, "error": str(e)}

        if session is None:
            self._release_slot()
            return {"success": False, "error": "Capture already running"}

        logger.info(f"Started recording for session: {session_id}")
        return {
            "success": True,
            "session_id": session_id,
            "path": str(path),
            "sample_rate": session.sample_rate,
        }

    def _release_slot(self) -> None:
        with self._slot_lock:
            self._active_session = None

    def stop_recording(self) -> Dict[str, Any]:
        """Stop the active recording and run the pipeline on it.

        Returns:
            Result dictionary; on success ``result`` holds the PipelineResult
        """
        with self._slot_lock:
            session_id = self._active_session
            use_llm = self._use_llm
        if session_id is None:
            self.capture.stop()
            return {"success": False, "error": "Not recording"}

        try:
            path = self.capture.stop()
        except CaptureIOError as e:
            logger.error(f"Failed to stop recorder: {e}")
            self._release_slot()
            self._reset_level()
            return {"success": False, "error": str(e), "session_id": session_id}
        # The next session may clear the shared flag once the slot is free
        limit_reached = self.limit_reached
        self._release_slot()

        if path is None:
            self._reset_level()
            return {"success": False, "error": "No recording file", "session_id": session_id}

        logger.info(f"Audio recording stopped; file written to temporary path: {path}")
        try:
            result = self.pipeline.process_recording(path, bypass_llm=not use_llm)
        except TranscriptionError as e:
            logger.error(f"Processing failed: {e}")
            return {"success": False, "error": str(e), "session_id": session_id, "path": str(path)}
        finally:
            self._reset_level()

        if remove_recording(path):
            logger.info(f"Temporary audio file removed: {path}")
        return {
            "success": True,
            "session_id": session_id,
            "path": str(path),
            "limit_reached": limit_reached,
            "result": result,
        }

    def _reset_level(self) -> None:
        if self.publisher is not None:
            self.publisher.publish_level(0.0)

    def on_config_changed(self, key_path: str) -> None:
        """pubsub listener for ``config.changed``."""
        if key_path == "audio.mic_id":
            self.capture.device_cache.update(self.config.settings().mic_id)

    def cleanup(self) -> None:
        """Stop any running capture without processing it."""
        try:
            self.capture.stop()
        except CaptureIOError as e:
            logger.error(f"Error finalizing recording during cleanup: {e}")
        self._release_slot()
        logger.info("RecordingService cleaned up")
