"""Audio-related data models."""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    channels: int
    total_callbacks: int
    total_samples: int
    stream_errors: int = 0
    limit_reached: bool = False


@dataclass
class InputDevice:
    """Input device as reported by the audio host."""
    index: int
    name: str
    default_sample_rate: int
    max_input_channels: int

    @classmethod
    def from_info(cls, info: dict) -> "InputDevice":
        return cls(
            index=int(info["index"]),
            name=str(info["name"]),
            default_sample_rate=int(info["defaultSampleRate"]),
            max_input_channels=int(info["maxInputChannels"]),
        )


@dataclass
class CaptureSession:
    """State of one active recording.

    ``limit_reached`` is shared with the caller; it is cleared when the
    session starts and set at most once, from the audio callback.
    """
    device: InputDevice
    sample_rate: int
    channels: int
    sample_format: int
    output_path: Path
    limit_reached: threading.Event
    started_at: float
    max_duration_seconds: float = 300.0
    session_id: Optional[str] = None
    total_callbacks: int = 0
    total_samples: int = 0
    stream_errors: int = 0
    limit_notified: bool = field(default=False, repr=False)
