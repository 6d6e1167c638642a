"""Real-time microphone capture to WAV with level metering and a duration cap."""

import time
import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
import pyaudio

from ..errors import CaptureIOError, DeviceError
from ..models.audio import AudioStats, CaptureSession, InputDevice
from .devices import DeviceCache, StreamHandle, format_dtype, negotiate_format
from .level_meter import LevelMeter
from .wav_sink import WavSink

logger = logging.getLogger(__name__)

DEFAULT_MAX_DURATION_SECONDS = 300.0


def downmix(raw: bytes, dtype: type, scale: float, channels: int) -> np.ndarray:
    """Interleaved device samples to mono float32 by averaging channels."""
    frames = np.frombuffer(raw, dtype=dtype)
    if channels > 1:
        usable = frames.size - (frames.size % channels)
        per_channel = frames[:usable].reshape(-1, channels).astype(np.float32) * np.float32(scale)
        return per_channel.mean(axis=1, dtype=np.float32)
    return frames.astype(np.float32) * np.float32(scale)


def to_int16(samples: np.ndarray) -> np.ndarray:
    """Float samples to int16, truncating toward zero and saturating."""
    return np.clip(samples * np.float32(32767.0), -32768.0, 32767.0).astype(np.int16)


class AudioCapture:
    """Captures one input stream at the device's native rate.

    The PyAudio callback downmixes each buffer, appends it to the WAV sink,
    feeds the level meter and watches the duration cap. State shared with
    the controlling thread is limited to the sink (behind ``_sink_lock``)
    and the session's ``limit_reached`` event.
    """

    def __init__(
        self,
        device_cache: Optional[DeviceCache] = None,
        level_callback: Optional[Callable[[float], None]] = None,
        limit_callback: Optional[Callable[[Optional[str]], None]] = None,
        max_duration_seconds: float = DEFAULT_MAX_DURATION_SECONDS,
        level_interval_seconds: float = 0.033,
        frames_per_buffer: int = 1024,
        clock: Callable[[], float] = time.monotonic,
        pyaudio_factory: Callable[[], pyaudio.PyAudio] = pyaudio.PyAudio,
    ):
        """Initialize audio capture.

        Args:
            device_cache: Selected-microphone cache; host default when empty
            level_callback: Receives throttled levels in [0.0, 1.0]
            limit_callback: Called once per session when the cap is crossed
            max_duration_seconds: Hard cap on recording length
            level_interval_seconds: Minimum spacing between level updates
            frames_per_buffer: Frames delivered per hardware callback
            clock: Monotonic time source
            pyaudio_factory: Creates the PyAudio host instance
        """
        self.device_cache = device_cache or DeviceCache(pyaudio_factory)
        self.level_callback = level_callback
        self.limit_callback = limit_callback
        self.max_duration_seconds = max_duration_seconds
        self.frames_per_buffer = frames_per_buffer
        self._clock = clock
        self._pyaudio_factory = pyaudio_factory

        self._meter = LevelMeter(interval_seconds=level_interval_seconds)
        self._sink_lock = threading.Lock()
        self._sink: Optional[WavSink] = None
        self._stream = StreamHandle()
        self._session: Optional[CaptureSession] = None
        self._dtype: type = np.float32
        self._scale: float = 1.0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    @property
    def is_recording(self) -> bool:
        return bool(self._stream)

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def start(self,
              device: Optional[InputDevice],
              output_path: Union[str, Path],
              limit_reached: threading.Event,
              session_id: Optional[str] = None) -> Optional[CaptureSession]:
        """Open the input stream and start writing ``output_path``.

        Args:
            device: Explicit device, or None for the cached/default one
            output_path: WAV file to create
            limit_reached: Shared flag, cleared now and set once on cap
            session_id: Identifier passed to the limit callback

        Returns:
            The new session, or None if a session is already running

        Raises:
            DeviceError: No input device, no supported format or stream open failure
            CaptureIOError: The WAV file could not be created
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return None

        limit_reached.clear()
        pa = self._pyaudio_factory()
        sink = None
        try:
            if device is None:
                device = self.device_cache.resolve(pa)
            channels = max(1, min(device.max_input_channels, 2))
            sample_format = negotiate_format(pa, device, channels)
            self._dtype, self._scale = format_dtype(sample_format)

            sink = WavSink(output_path, device.default_sample_rate)
            now = self._clock()
            session = CaptureSession(
                device=device,
                sample_rate=device.default_sample_rate,
                channels=channels,
                sample_format=sample_format,
                output_path=Path(output_path),
                limit_reached=limit_reached,
                started_at=now,
                max_duration_seconds=self.max_duration_seconds,
                session_id=session_id,
            )
            self._meter.reset(now)
            with self._sink_lock:
                self._sink = sink
            self._session = session

            stream = pa.open(
                format=sample_format,
                channels=channels,
                rate=device.default_sample_rate,
                input=True,
                input_device_index=device.index,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._on_audio,
                start=False,
            )
            stream.start_stream()
        except (IOError, OSError, ValueError) as e:
            self._abort(pa, sink)
            raise DeviceError(f"Failed to open input stream: {e}") from e
        except (DeviceError, CaptureIOError):
            self._abort(pa, sink)
            raise

        self.pyaudio_instance = pa
        self._stream = StreamHandle(stream)
        logger.info(f"Recording started: {device.name} {session.sample_rate}Hz, "
                    f"{channels}ch -> {output_path}")
        return session

    def _abort(self, pa: pyaudio.PyAudio, sink: Optional[WavSink]) -> None:
        with self._sink_lock:
            self._sink = None
        self._session = None
        if sink is not None and not sink.finalized:
            try:
                sink.finalize()
            except CaptureIOError as e:
                logger.error(f"Failed to finalize aborted recording: {e}")
        pa.terminate()

    def stop(self) -> Optional[Path]:
        """Stop the stream, then finalize the WAV file.

        Safe to call when not recording.

        Returns:
            Path of the finalized recording, or None if nothing was recording

        Raises:
            CaptureIOError: Finalizing the file failed; the partial file is kept
        """
        stream = self._stream.take()
        with self._sink_lock:
            has_sink = self._sink is not None
        if stream is None and not has_sink:
            logger.debug("Stop requested with no recording in progress")
            return None

        # The stream must be gone before finalizing, or an in-flight
        # callback could still be writing.
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except (IOError, OSError) as e:
                logger.error(f"Error closing input stream: {e}")
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

        with self._sink_lock:
            sink, self._sink = self._sink, None
        session, self._session = self._session, None

        if session is not None:
            logger.info(f"Recording stopped after {session.total_callbacks} callbacks, "
                        f"{session.total_samples} samples")
        if sink is None:
            return None
        return sink.finalize()

    def _on_audio(self, in_data, frame_count, time_info, status_flags):
        """PyAudio callback; runs on the audio thread and must not block."""
        session = self._session
        if session is None or in_data is None:
            return (None, pyaudio.paContinue)

        now = self._clock()
        session.total_callbacks += 1
        if status_flags:
            session.stream_errors += 1
            logger.error(f"Stream error: status flags {status_flags}")

        self._check_duration(session, now)

        mono = downmix(in_data, self._dtype, self._scale, session.channels)
        with self._sink_lock:
            if self._sink is not None:
                try:
                    self._sink.write_samples(to_int16(mono))
                except CaptureIOError as e:
                    logger.error(f"Error writing samples: {e}")
        session.total_samples += int(mono.size)

        self._meter.accumulate(mono)
        level = self._meter.poll(now)
        if level is not None and self.level_callback is not None:
            try:
                self.level_callback(level)
            except Exception as e:
                logger.error(f"Level callback failed: {e}")

        return (None, pyaudio.paContinue)

    def _check_duration(self, session: CaptureSession, now: float) -> None:
        if session.limit_notified:
            return
        if now - session.started_at < session.max_duration_seconds:
            return
        session.limit_notified = True
        session.limit_reached.set()
        logger.warning(f"Recording limit of {session.max_duration_seconds:.0f}s reached")
        if self.limit_callback is not None:
            try:
                self.limit_callback(session.session_id)
            except Exception as e:
                logger.error(f"Limit callback failed: {e}")

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        session = self._session
        if session is None:
            return AudioStats(is_recording=False, duration_seconds=0.0, sample_rate=0,
                              channels=0, total_callbacks=0, total_samples=0)
        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=self._clock() - session.started_at,
            sample_rate=session.sample_rate,
            channels=session.channels,
            total_callbacks=session.total_callbacks,
            total_samples=session.total_samples,
            stream_errors=session.stream_errors,
            limit_reached=session.limit_reached.is_set(),
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if getattr(self, "_stream", None):
            try:
                self.stop()
            except CaptureIOError as e:
                logger.error(f"Error finalizing recording on cleanup: {e}")
