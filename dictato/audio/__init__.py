"""Audio capture and processing module."""

from .capture import AudioCapture
from .devices import DeviceCache, StreamHandle
from .level_meter import LevelMeter
from .resample import resample_linear
from .wav_sink import WavSink

__all__ = [
    'AudioCapture',
    'DeviceCache',
    'StreamHandle',
    'LevelMeter',
    'resample_linear',
    'WavSink',
]
