"""Abstract base class for transcription engines."""

from abc import ABC, abstractmethod
import logging

import numpy as np

from ..models.transcription import EngineParams

logger = logging.getLogger(__name__)


class AbstractTranscriptionEngine(ABC):
    """Turns 16 kHz mono float samples into text."""

    @abstractmethod
    def load(self, model_path: str, params: EngineParams) -> None:
        """Load the model or client.

        Args:
            model_path: Model file, directory or credentials the engine needs
            params: Precision and request parameters

        Raises:
            TranscriptionError: If loading fails
        """
        pass

    @abstractmethod
    def transcribe(self, samples: np.ndarray) -> str:
        """Transcribe 16 kHz mono float samples.

        Must only be called after a successful ``load``.

        Raises:
            TranscriptionError: If inference fails
        """
        pass

    def cleanup(self) -> None:
        """Release engine resources."""
        pass
