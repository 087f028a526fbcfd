"""
Bounded, insertion-ordered store of per-message alert state.

Eviction is FIFO by insertion order: updating an existing message keeps its
position, and reads never reorder entries (this is not an LRU). The store
itself is not synchronized; ``ThresholdEvaluator`` owns the only instance and
serializes every access behind its lock.
"""

import logging

from src.alerts.schemas import AlertState

logger = logging.getLogger(__name__)


class AlertStateStore:
    """
    Mapping of message id -> AlertState with a hard capacity.

    Usage:
        store = AlertStateStore(capacity=300)
        store.put("123", AlertState(last_value=150))
        store.sweep_expired(now=time.time(), window=900)
    """

    def __init__(self, capacity: int = 300):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._entries: dict[str, AlertState] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, message_id: str) -> AlertState | None:
        return self._entries.get(message_id)

    def put(self, message_id: str, state: AlertState) -> str | None:
        """
        Insert or replace the state for a message.

        A replacement keeps the original insertion position. An insert that
        grows the store past capacity evicts the oldest-inserted entry.

        Args:
            message_id: Message identifier
            state: Alert state to store

        Returns:
            The evicted message id, if an eviction happened
        """
        if message_id in self._entries:
            self._entries[message_id] = state
            return None

        self._entries[message_id] = state
        evicted = self.evict_oldest_if_over_capacity()

        if len(self._entries) > self._capacity:
            # Should be unreachable; drop the update rather than grow unbounded
            del self._entries[message_id]
            logger.error(
                "Alert state store over capacity after eviction "
                "(size=%d, capacity=%d); dropped update for message %s",
                len(self._entries) + 1,
                self._capacity,
                message_id,
            )
        return evicted

    def evict_oldest_if_over_capacity(self) -> str | None:
        """
        Remove the least-recently-inserted entry if size exceeds capacity.

        Returns:
            The evicted message id, or None if the store was within capacity
        """
        if len(self._entries) <= self._capacity:
            return None

        oldest = next(iter(self._entries))
        del self._entries[oldest]
        logger.debug("Evicted oldest alert state for message %s", oldest)
        return oldest

    def sweep_expired(self, now: float, window: float) -> list[str]:
        """
        Remove every entry whose latest firing is older than ``window``.

        Entries that never fired have ``last_fired_at == 0`` and are removed
        on the first sweep.

        Args:
            now: Current time in epoch seconds
            window: Expiry window in seconds

        Returns:
            Message ids that were removed
        """
        expired = [
            message_id
            for message_id, state in self._entries.items()
            if now - state.last_fired_at > window
        ]
        for message_id in expired:
            del self._entries[message_id]

        if expired:
            logger.debug(
                "Swept %d expired alert states (remaining=%d)",
                len(expired),
                len(self._entries),
            )
        return expired

    def ids(self) -> list[str]:
        """Message ids in insertion order (oldest first)."""
        return list(self._entries)

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries
