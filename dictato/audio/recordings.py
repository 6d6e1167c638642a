"""Temporary recordings directory and WAV reading helpers."""

import os
import time
import uuid
import wave
import logging
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from ..errors import TranscriptionError
from .resample import resample_linear, TARGET_SAMPLE_RATE

logger = logging.getLogger(__name__)

RECORDINGS_DIRNAME = "dictato_recordings"


def ensure_recordings_dir(base_dir: Optional[Union[str, Path]] = None) -> Path:
    """Create (if needed) and return the directory recordings are written to."""
    base = Path(base_dir) if base_dir else Path(tempfile.gettempdir())
    recordings = base / RECORDINGS_DIRNAME
    recordings.mkdir(parents=True, exist_ok=True)
    return recordings


def generate_unique_wav_name() -> str:
    """Recording file name, unique even for sessions started in the same second."""
    return f"dictato-{int(time.time())}-{uuid.uuid4().hex[:8]}.wav"


def remove_recording(wav_path: Union[str, Path]) -> bool:
    """Delete one processed recording; failures are logged, not raised."""
    try:
        Path(wav_path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to delete {wav_path}: {e}")
        return False
    return True


def read_wav_samples(wav_path: Union[str, Path]) -> np.ndarray:
    """Read a 16-bit PCM WAV file as mono float samples at 16 kHz.

    Raises:
        TranscriptionError: If the file cannot be read or is not 16-bit PCM
    """
    try:
        with wave.open(str(wav_path), 'rb') as wf:
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (OSError, wave.Error, EOFError) as e:
        raise TranscriptionError(f"Failed to read WAV file {wav_path}: {e}") from e

    if sample_width != 2:
        raise TranscriptionError(
            f"Expected 16 bits per sample, found {sample_width * 8}")

    raw = np.frombuffer(frames, dtype='<i2')
    if channels > 1:
        usable = (raw.size // channels) * channels
        frames_2d = raw[:usable].reshape(-1, channels).astype(np.int32)
        # Integer division truncates toward zero, matching the writer's cast
        summed = frames_2d.sum(axis=1)
        raw = np.clip(np.fix(summed / channels), -32768, 32767).astype(np.int16)

    samples = raw.astype(np.float32) / 32767.0
    if sample_rate != TARGET_SAMPLE_RATE:
        samples = resample_linear(samples, sample_rate, TARGET_SAMPLE_RATE)
    return samples


def wav_metadata(wav_path: Union[str, Path]) -> Tuple[float, int]:
    """Duration in seconds and size in bytes, ``(0.0, 0)`` if unreadable."""
    try:
        with wave.open(str(wav_path), 'rb') as wf:
            rate = wf.getframerate()
            duration = wf.getnframes() / rate if rate > 0 else 0.0
        size = os.path.getsize(wav_path)
    except (OSError, wave.Error, EOFError) as e:
        logger.debug(f"Could not read WAV metadata for {wav_path}: {e}")
        return 0.0, 0
    return duration, size
