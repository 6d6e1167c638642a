"""Services layer for Dictato application logic."""

from .pipeline_service import PipelineOrchestrator
from .recording_service import RecordingService

__all__ = [
    "PipelineOrchestrator",
    "RecordingService",
]
