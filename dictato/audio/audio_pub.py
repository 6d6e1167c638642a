"""Event publisher for level, duration-limit and pipeline notifications."""

import logging
from typing import Optional

from pubsub import pub

logger = logging.getLogger(__name__)

LEVEL_TOPIC = "audio.level"
LIMIT_REACHED_TOPIC = "audio.limit_reached"
STAGE_TOPIC = "pipeline.stage"
PIPELINE_ERROR_TOPIC = "pipeline.error"
HISTORY_UPDATED_TOPIC = "history.updated"
DICTIONARY_UPDATED_TOPIC = "dictionary.updated"


class EventPublisher:
    """Publishes UI-facing events using pubsub.pub."""

    def __init__(self, prefix: str = ""):
        """Initialize event publisher.

        Args:
            prefix: Optional topic prefix, e.g. to isolate test buses
        """
        self.prefix = prefix
        logger.info(f"EventPublisher initialized (prefix={prefix!r})")

    def topic(self, name: str) -> str:
        return f"{self.prefix}.{name}" if self.prefix else name

    def publish_level(self, level: float) -> None:
        pub.sendMessage(self.topic(LEVEL_TOPIC), level=level)

    def publish_limit_reached(self, session_id: Optional[str] = None) -> None:
        logger.info(f"Recording limit reached (session={session_id})")
        pub.sendMessage(self.topic(LIMIT_REACHED_TOPIC), session_id=session_id)

    def publish_stage(self, stage: str, phase: str) -> None:
        pub.sendMessage(self.topic(STAGE_TOPIC), stage=stage, phase=phase)
        logger.debug(f"Pipeline stage {stage}: {phase}")

    def publish_error(self, stage: str, message: str) -> None:
        pub.sendMessage(self.topic(PIPELINE_ERROR_TOPIC), stage=stage, message=message)

    def publish_history_updated(self) -> None:
        pub.sendMessage(self.topic(HISTORY_UPDATED_TOPIC))

    def publish_dictionary_updated(self) -> None:
        pub.sendMessage(self.topic(DICTIONARY_UPDATED_TOPIC))
