"""Post-capture pipeline: transcribe, correct, refine, format, persist."""

import logging
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np

from ..audio.audio_pub import EventPublisher
from ..audio.recordings import read_wav_samples, wav_metadata
from ..dictionary.phonetic import PhoneticDictionaryMatcher
from ..dictionary.store import Dictionary
from ..formatting.rules import FormattingSettings, apply_formatting
from ..models.transcription import PipelineResult
from ..storage.history import HistoryStore
from ..storage.stats import StatsStore
from ..transcription.engine_slot import EngineSlot
from ..transcription.ollama_refiner import OllamaRefiner

logger = logging.getLogger(__name__)

STAGE_TRANSCRIBE = "transcribe"
STAGE_DICTIONARY = "dictionary"
STAGE_LLM = "llm"
STAGE_FORMAT = "format"
STAGE_PERSIST = "persist"


class PipelineOrchestrator:
    """Runs the stages for one finished recording, in a fixed order.

    Only transcription failures reach the caller. Every later stage
    falls back to its input text when it fails.
    """

    def __init__(self,
                 engine: EngineSlot,
                 dictionary: Dictionary,
                 matcher: Optional[PhoneticDictionaryMatcher] = None,
                 refiner: Optional[OllamaRefiner] = None,
                 formatting_provider: Optional[Callable[[], FormattingSettings]] = None,
                 history: Optional[HistoryStore] = None,
                 stats: Optional[StatsStore] = None,
                 publisher: Optional[EventPublisher] = None,
                 sample_reader: Callable[[Union[str, Path]], np.ndarray] = read_wav_samples):
        """Initialize the pipeline.

        Args:
            engine: Loaded-once transcription engine
            dictionary: Current dictionary snapshot holder
            matcher: Phonetic matcher for dictionary correction
            refiner: Language-model client; None disables refinement
            formatting_provider: Returns the current formatting rules
            history: Receives the final text
            stats: Receives word count, duration and size
            publisher: Stage and error notifications
            sample_reader: Reads a WAV file as 16 kHz mono floats
        """
        self.engine = engine
        self.dictionary = dictionary
        self.matcher = matcher or PhoneticDictionaryMatcher()
        self.refiner = refiner
        self.formatting_provider = formatting_provider or FormattingSettings
        self.history = history
        self.stats = stats
        self.publisher = publisher
        self.sample_reader = sample_reader

    def _stage(self, stage: str, phase: str) -> None:
        if self.publisher is not None:
            self.publisher.publish_stage(stage, phase)

    def process_recording(self, wav_path: Union[str, Path], bypass_llm: bool = False) -> PipelineResult:
        """Turn a finished recording into final text.

        Args:
            wav_path: Finalized recording
            bypass_llm: Skip language-model refinement

        Raises:
            TranscriptionError: If the recording could not be transcribed
        """
        raw_text = self.transcribe_audio(wav_path)
        logger.debug(f"Raw transcription: {raw_text}")

        if not raw_text.strip():
            logger.debug("Transcription is empty, skipping further processing.")
            return PipelineResult.empty(raw_text)

        corrected = self.correct_with_dictionary(raw_text)
        logger.debug(f"Transcription fixed with dictionary: {corrected}")

        refined, llm_applied = self.refine(corrected, bypass_llm)

        final_text = self.apply_formatting(refined)
        logger.debug(f"Transcription with formatting rules: {final_text}")

        result = PipelineResult(
            raw_text=raw_text,
            corrected_text=corrected,
            refined_text=refined,
            final_text=final_text,
            llm_applied=llm_applied,
        )
        self.persist(wav_path, result)
        return result

    def transcribe_and_correct(self, wav_path: Union[str, Path]) -> str:
        """Transcription plus dictionary correction only."""
        raw_text = self.transcribe_audio(wav_path)
        if not raw_text.strip():
            return raw_text
        return self.correct_with_dictionary(raw_text)

    def transcribe_audio(self, wav_path: Union[str, Path]) -> str:
        """Read, resample and transcribe a WAV file.

        Raises:
            TranscriptionError: Unreadable file, engine load or inference failure
        """
        self._stage(STAGE_TRANSCRIBE, "start")
        try:
            samples = self.sample_reader(wav_path)
            return self.engine.transcribe(samples)
        finally:
            self._stage(STAGE_TRANSCRIBE, "end")

    def correct_with_dictionary(self, text: str) -> str:
        self._stage(STAGE_DICTIONARY, "start")
        try:
            return self.matcher.correct(text, self.dictionary.get())
        except Exception as e:
            logger.warning(f"Dictionary correction failed: {e}. Using raw transcription.",
                           exc_info=True)
            return text
        finally:
            self._stage(STAGE_DICTIONARY, "end")

    def refine(self, text: str, bypass: bool = False) -> Tuple[str, bool]:
        """Refine with the language model unless bypassed.

        Returns:
            The text to continue with, and whether the model was applied
        """
        if bypass or self.refiner is None:
            return text, False

        self._stage(STAGE_LLM, "start")
        try:
            refined = self.refiner.refine_sync(text, self.dictionary.words())
            logger.debug(f"Transcription post-processed with LLM: {refined}")
            return refined, True
        except Exception as e:
            logger.warning(f"LLM post-processing failed: {e}. Using original transcription.")
            if self.publisher is not None:
                self.publisher.publish_error(STAGE_LLM, str(e))
            return text, False
        finally:
            self._stage(STAGE_LLM, "end")

    def apply_formatting(self, text: str) -> str:
        self._stage(STAGE_FORMAT, "start")
        try:
            return apply_formatting(text, self.formatting_provider())
        except Exception as e:
            logger.warning(f"Failed to apply formatting rules: {e}. Skipping.")
            return text
        finally:
            self._stage(STAGE_FORMAT, "end")

    def persist(self, wav_path: Union[str, Path], result: PipelineResult) -> None:
        """Best-effort history and statistics update; never raises."""
        self._stage(STAGE_PERSIST, "start")
        try:
            result.duration_seconds, result.size_bytes = wav_metadata(wav_path)
            result.word_count = len(result.final_text.split())

            if self.history is not None:
                try:
                    self.history.add_transcription(result.final_text)
                    if self.publisher is not None:
                        self.publisher.publish_history_updated()
                except Exception as e:
                    logger.error(f"Failed to save to history: {e}")

            if self.stats is not None:
                try:
                    self.stats.add_session(result.word_count, result.duration_seconds,
                                           result.size_bytes)
                except Exception as e:
                    logger.error(f"Failed to save stats session: {e}")
        finally:
            self._stage(STAGE_PERSIST, "end")
