"""Google Speech-to-Text transcription engine."""

import time
import logging
from typing import Optional

import numpy as np
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

from ..audio.resample import TARGET_SAMPLE_RATE
from ..errors import TranscriptionError
from ..models.transcription import EngineParams
from .base import AbstractTranscriptionEngine

logger = logging.getLogger(__name__)


class GoogleSpeechEngine(AbstractTranscriptionEngine):
    """Google Speech-to-Text API engine for transcription."""

    service_name = "Google Speech-to-Text"

    def __init__(self, use_enhanced: bool = True, enable_automatic_punctuation: bool = True):
        """Initialize Google Speech engine.

        Args:
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
        """
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.client: Optional[speech.SpeechClient] = None
        self.config: Optional[speech.RecognitionConfig] = None
        self.request_timeout = 30.0
        self.project_id = None

    def load(self, model_path: str, params: EngineParams) -> None:
        """Create the Speech client from a service-account JSON file."""
        logger.info(f"Loading Google credentials from: {model_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(model_path)
        except (OSError, ValueError) as e:
            raise TranscriptionError(f"Failed to load credentials {model_path}: {e}") from e

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        self.request_timeout = params.request_timeout
        self.config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=TARGET_SAMPLE_RATE,
            language_code=params.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
        )
        logger.info(f"Using Google Cloud project: {self.project_id}")

    def transcribe(self, samples: np.ndarray) -> str:
        """Transcribe 16 kHz mono float samples using Google Speech-to-Text."""
        if self.client is None or self.config is None:
            raise TranscriptionError("Engine not loaded")

        start_time = time.time()
        pcm = np.clip(np.asarray(samples, dtype=np.float32) * 32767.0, -32768, 32767)
        audio = speech.RecognitionAudio(content=pcm.astype('<i2').tobytes())
        logger.debug(f"Transcribing {len(samples)} samples; language: {self.config.language_code}")

        try:
            response = self.client.recognize(config=self.config, audio=audio,
                                             timeout=self.request_timeout)
        except gax_exceptions.DeadlineExceeded as e:
            raise TranscriptionError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            raise TranscriptionError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            raise TranscriptionError(f"Google Speech API error: {e}") from e

        processing_time = time.time() - start_time
        if not response.results:
            logger.debug(f"No speech detected ({processing_time:.3f}s)")
            return ""

        text = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ).strip()
        logger.debug(f"Transcription: '{text}' (processing_time: {processing_time:.3f}s)")
        return text

    def cleanup(self) -> None:
        self.client = None
