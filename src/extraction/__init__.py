"""
Heart-count extraction from chat message components.

Components:
- parse_label: Label text -> integer (k/m suffixes) or None
- extract_hearts: All heart counts in a message
- representative_value: Maximum of the extracted counts
- observe: Message -> HeartObservation (or None)
"""

from src.extraction.extractor import (
    HeartObservation,
    extract_hearts,
    observe,
    representative_value,
)
from src.extraction.labels import clean_label, parse_label

__all__ = [
    "HeartObservation",
    "clean_label",
    "extract_hearts",
    "observe",
    "parse_label",
    "representative_value",
]
