"""Extraction of heart counts from message components.

A message carries rows of interactive elements (buttons). An element is a
candidate when its emoji is a heart or its label contains a digit; each
candidate label is run through ``parse_label`` and failures are dropped.
Malformed structures at any level are treated as empty.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from src.extraction.labels import parse_label
from src.ingestion.schemas import ChatMessage, ObservationSource

logger = logging.getLogger(__name__)

HEART_MARKER = "❤"  # matches both "❤" and "❤️"

_DIGIT = re.compile(r"[0-9]")


@dataclass
class HeartObservation:
    """A (message id, representative value) pair from one message snapshot.

    Attributes:
        message_id: Identifier of the observed message.
        value: Representative value (maximum of ``values``), None if empty.
        values: Every heart count parsed from the message, in element order.
        source: Which observation source produced it.
    """

    message_id: str
    value: int | None
    values: list[int] = field(default_factory=list)
    source: ObservationSource = ObservationSource.MANUAL


def _get(obj: Any, key: str) -> Any:
    """Read ``key`` from a mapping or attribute-bearing object."""
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _iter_list(value: Any) -> Iterable[Any]:
    if isinstance(value, (list, tuple)):
        return value
    return ()


def _has_heart(element: Any) -> bool:
    emoji = _get(element, "emoji")
    if emoji is None:
        return False
    name = _get(emoji, "name")
    return name is not None and HEART_MARKER in str(name)


def _looks_numeric(label: Any) -> bool:
    return bool(label) and _DIGIT.search(str(label)) is not None


def is_candidate(element: Any) -> bool:
    """Check whether an element may carry a heart count."""
    return _has_heart(element) or _looks_numeric(_get(element, "label"))


def extract_hearts(message: Any) -> list[int]:
    """
    Collect every heart count found in a message's components.

    Args:
        message: ChatMessage, raw message mapping, or any object exposing
            ``components`` (a list of rows with ``components`` lists)

    Returns:
        Parsed values in row/element order; empty if none parse
    """
    try:
        values: list[int] = []
        for row in _iter_list(_get(message, "components")):
            for element in _iter_list(_get(row, "components")):
                if not is_candidate(element):
                    continue
                value = parse_label(_get(element, "label"))
                if value is not None:
                    values.append(value)
        return values
    except Exception:
        logger.exception("Failed to extract hearts from message")
        return []


def representative_value(values: Iterable[int]) -> int | None:
    """Maximum of the extracted values, or None when nothing was extracted."""
    return max(values, default=None)


def observe(
    message: ChatMessage,
    source: ObservationSource = ObservationSource.MANUAL,
) -> HeartObservation | None:
    """
    Turn a message into an observation for the alert engine.

    Args:
        message: Normalized chat message
        source: Observation source tag

    Returns:
        HeartObservation, or None when the message has no heart count
    """
    values = extract_hearts(message)
    value = representative_value(values)
    if value is None:
        return None
    return HeartObservation(
        message_id=message.id,
        value=value,
        values=values,
        source=source,
    )
