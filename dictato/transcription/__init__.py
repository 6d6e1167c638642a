"""Transcription module for Dictato."""

from .base import AbstractTranscriptionEngine
from .engine_slot import EngineSlot, EngineState
from .ollama_refiner import OllamaRefiner, build_prompt

__all__ = [
    "AbstractTranscriptionEngine",
    "EngineSlot",
    "EngineState",
    "OllamaRefiner",
    "build_prompt",
]
