"""Message ingestion - gateway feed, REST poller and the shared message schema."""

from src.ingestion.schemas import (
    ChatMessage,
    ObservationSource,
)

__all__ = [
    "ObservationSource",
    "ChatMessage",
]
