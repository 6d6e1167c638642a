"""Process-wide holder that loads a transcription engine once."""

import enum
import logging
import threading
from typing import Callable, Optional

import numpy as np

from ..errors import TranscriptionError
from ..models.transcription import EngineParams
from .base import AbstractTranscriptionEngine

logger = logging.getLogger(__name__)


class EngineState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


class EngineSlot:
    """Lazily loads an engine and serializes access to it.

    One lock guards the whole state machine. A caller arriving while
    another thread is ``LOADING`` blocks on the lock and then finds the
    engine ``READY``; a failed load returns the slot to ``UNLOADED``.
    """

    def __init__(self,
                 engine_factory: Callable[[], AbstractTranscriptionEngine],
                 model_path: str,
                 params: Optional[EngineParams] = None):
        self._engine_factory = engine_factory
        self.model_path = model_path
        self.params = params or EngineParams()
        self._lock = threading.Lock()
        self._state = EngineState.UNLOADED
        self._engine: Optional[AbstractTranscriptionEngine] = None

    @property
    def state(self) -> EngineState:
        return self._state

    def _ensure_loaded_locked(self) -> AbstractTranscriptionEngine:
        if self._state is EngineState.READY and self._engine is not None:
            return self._engine

        self._state = EngineState.LOADING
        logger.info(f"Loading transcription engine from {self.model_path}")
        try:
            engine = self._engine_factory()
            engine.load(self.model_path, self.params)
        except TranscriptionError:
            self._state = EngineState.UNLOADED
            raise
        except Exception as e:
            self._state = EngineState.UNLOADED
            raise TranscriptionError(f"Failed to load model: {e}") from e

        self._engine = engine
        self._state = EngineState.READY
        logger.info("Model loaded and cached in memory")
        return engine

    def ensure_loaded(self) -> None:
        """Load the engine if needed; never reloads a ready engine."""
        with self._lock:
            self._ensure_loaded_locked()

    def preload(self) -> bool:
        """Warm start; returns False instead of raising on failure."""
        try:
            self.ensure_loaded()
            return True
        except TranscriptionError as e:
            logger.error(f"Engine preload failed: {e}")
            return False

    def transcribe(self, samples: np.ndarray) -> str:
        """Transcribe with the loaded engine, one call at a time."""
        with self._lock:
            engine = self._ensure_loaded_locked()
            try:
                return engine.transcribe(samples)
            except TranscriptionError:
                raise
            except Exception as e:
                raise TranscriptionError(f"Transcription failed: {e}") from e

    def unload(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.cleanup()
            self._engine = None
            self._state = EngineState.UNLOADED
