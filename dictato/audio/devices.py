"""Input device lookup, caching and sample-format negotiation."""

import logging
import threading
from typing import Callable, List, Optional, Tuple

import numpy as np
import pyaudio

from ..errors import DeviceError
from ..models.audio import InputDevice

logger = logging.getLogger(__name__)

# Probed in order; the first format the device accepts is used.
SUPPORTED_FORMATS: Tuple[int, ...] = (pyaudio.paFloat32, pyaudio.paInt32, pyaudio.paInt16)

_FORMAT_DTYPES = {
    pyaudio.paFloat32: (np.float32, 1.0),
    pyaudio.paInt32: (np.int32, 1.0 / 2147483648.0),
    pyaudio.paInt16: (np.int16, 1.0 / 32768.0),
}


def format_dtype(sample_format: int) -> Tuple[type, float]:
    """numpy dtype and float scale for a PyAudio sample format."""
    try:
        return _FORMAT_DTYPES[sample_format]
    except KeyError:
        raise DeviceError(f"Unsupported sample format: {sample_format}") from None


def list_microphones(pa: pyaudio.PyAudio) -> List[str]:
    """Names of all devices that can record."""
    names = []
    for index in range(pa.get_device_count()):
        try:
            info = pa.get_device_info_by_index(index)
        except (IOError, OSError):
            continue
        if int(info.get("maxInputChannels", 0)) > 0:
            names.append(str(info["name"]))
    return names


def negotiate_format(pa: pyaudio.PyAudio, device: InputDevice, channels: int) -> int:
    """Pick the first supported sample format for ``device``.

    Raises:
        DeviceError: If none of the supported formats is accepted
    """
    for sample_format in SUPPORTED_FORMATS:
        try:
            if pa.is_format_supported(device.default_sample_rate,
                                      input_device=device.index,
                                      input_channels=channels,
                                      input_format=sample_format):
                return sample_format
        except ValueError:
            continue
    raise DeviceError(f"Unsupported sample format for device '{device.name}'")


class DeviceCache:
    """Remembers the user-selected microphone between sessions.

    Resolving a device never enumerates the host; only ``update()`` does,
    when the selection changes.
    """

    def __init__(self, pyaudio_factory: Callable[[], pyaudio.PyAudio] = pyaudio.PyAudio):
        self._pyaudio_factory = pyaudio_factory
        self._lock = threading.Lock()
        self._cached: Optional[InputDevice] = None

    def set(self, device: Optional[InputDevice]) -> None:
        with self._lock:
            self._cached = device

    def get(self) -> Optional[InputDevice]:
        with self._lock:
            return self._cached

    def update(self, mic_id: Optional[str]) -> Optional[InputDevice]:
        """Enumerate devices once and cache the one named ``mic_id``.

        ``None`` clears the cache so the host default is used.
        """
        if mic_id is None:
            self.set(None)
            return None

        pa = self._pyaudio_factory()
        try:
            found = None
            for index in range(pa.get_device_count()):
                try:
                    info = pa.get_device_info_by_index(index)
                except (IOError, OSError):
                    continue
                if info.get("name") == mic_id and int(info.get("maxInputChannels", 0)) > 0:
                    found = InputDevice.from_info(info)
                    break
        finally:
            pa.terminate()

        if found is None:
            logger.warning(f"Microphone '{mic_id}' not found, falling back to default")
        else:
            logger.info(f"Microphone cache updated: {found.name}")
        self.set(found)
        return found

    def init_in_background(self, mic_id: Optional[str]) -> Optional[threading.Thread]:
        """Warm the cache off the calling thread at startup."""
        if mic_id is None:
            return None
        thread = threading.Thread(target=self.update, args=(mic_id,), daemon=True)
        thread.name = "MicCacheInit"
        thread.start()
        return thread

    def resolve(self, pa: pyaudio.PyAudio) -> InputDevice:
        """Cached device if one is selected, else the host default input."""
        cached = self.get()
        if cached is not None:
            logger.debug(f"Selected microphone: {cached.name} (cached)")
            return cached

        try:
            info = pa.get_default_input_device_info()
        except (IOError, OSError) as e:
            raise DeviceError(f"No default input device available: {e}") from e
        device = InputDevice.from_info(info)
        logger.debug(f"Selected microphone: default ({device.name})")
        return device


class StreamHandle:
    """Single-owner holder for a native PyAudio stream.

    The stream is created on the thread that starts a session and may be
    torn down from another. That is sound only because exactly one thread
    owns the handle at any time: the owner calls ``take()`` and the handle
    is empty from then on, so the stream is never touched concurrently.
    """

    def __init__(self, stream=None):
        self._stream = stream

    def __bool__(self) -> bool:
        return self._stream is not None

    def take(self):
        stream, self._stream = self._stream, None
        return stream
