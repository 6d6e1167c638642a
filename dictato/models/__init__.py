"""Data models for the Dictato application."""

from .audio import AudioStats, CaptureSession, InputDevice
from .transcription import EngineParams, PipelineResult

__all__ = [
    "AudioStats",
    "CaptureSession",
    "InputDevice",
    "EngineParams",
    "PipelineResult",
]
