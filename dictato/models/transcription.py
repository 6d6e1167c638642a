"""Transcription and pipeline data models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class EngineParams:
    """Parameters handed to a transcription engine on load."""
    precision: str = "int8"
    language: str = "en-US"
    request_timeout: float = 30.0


@dataclass
class PipelineResult:
    """Everything produced by one pass over a finished recording."""
    raw_text: str
    corrected_text: str
    refined_text: str
    final_text: str
    duration_seconds: float = 0.0
    size_bytes: int = 0
    word_count: int = 0
    llm_applied: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def empty(cls, raw_text: str = "") -> "PipelineResult":
        return cls(raw_text=raw_text, corrected_text="", refined_text="", final_text="")
