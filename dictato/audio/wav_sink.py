"""Mono 16-bit PCM WAV writer used by the capture callback."""

import wave
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from ..errors import CaptureIOError

logger = logging.getLogger(__name__)


class WavSink:
    """Writes mono signed 16-bit samples to a WAV file.

    Frames are written raw; the RIFF header sizes are only patched by
    ``finalize()``. A sink that is never finalized leaves an invalid file.
    """

    SAMPLE_WIDTH = 2
    CHANNELS = 1

    def __init__(self, path: Union[str, Path], sample_rate: int):
        self.path = Path(path)
        self.sample_rate = sample_rate
        self.samples_written = 0
        self._finalized = False
        try:
            self._writer: Optional[wave.Wave_write] = wave.open(str(self.path), 'wb')
            self._writer.setnchannels(self.CHANNELS)
            self._writer.setsampwidth(self.SAMPLE_WIDTH)
            self._writer.setframerate(sample_rate)
        except (OSError, wave.Error) as e:
            raise CaptureIOError(f"Failed to create WAV file {self.path}: {e}") from e
        logger.debug(f"WAV sink opened: {self.path} ({sample_rate}Hz, mono, 16-bit)")

    @property
    def finalized(self) -> bool:
        return self._finalized

    def write_sample(self, sample: int) -> None:
        """Write a single int16 sample."""
        self.write_samples(np.array([sample], dtype=np.int16))

    def write_samples(self, samples: np.ndarray) -> None:
        """Write a block of int16 samples."""
        if self._finalized or self._writer is None:
            raise CaptureIOError(f"WAV sink already finalized: {self.path}")
        data = np.asarray(samples, dtype='<i2')
        try:
            self._writer.writeframesraw(data.tobytes())
        except (OSError, wave.Error) as e:
            raise CaptureIOError(f"Failed to write samples to {self.path}: {e}") from e
        self.samples_written += int(data.size)

    def finalize(self) -> Path:
        """Patch the header and close the file. Must be called exactly once."""
        if self._finalized:
            raise CaptureIOError(f"WAV sink already finalized: {self.path}")
        self._finalized = True
        writer, self._writer = self._writer, None
        try:
            writer.close()
        except (OSError, wave.Error) as e:
            raise CaptureIOError(f"Failed to finalize WAV file {self.path}: {e}") from e
        logger.info(f"WAV file finalized: {self.path} ({self.samples_written} samples)")
        return self.path
