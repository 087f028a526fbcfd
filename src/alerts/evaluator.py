"""
Threshold evaluation and per-message alert dedup.

``ThresholdEvaluator`` owns the bounded ``AlertStateStore`` and is the single
critical section both observation sources funnel into. Per message it walks
a small state machine:

    Unseen        -> entry created, every matching tier fires
    value == last -> full no-op (collapses gateway + poll duplicates)
    value != last -> last_value updated, matching tiers without a marker fire

A tier's fired marker is never cleared while the entry lives, so each tier
fires at most once per message. Eviction (capacity) or expiry (sweep) drops
the whole entry; a later observation of that message starts from Unseen.

``evaluate`` and ``sweep`` hold a ``threading.Lock`` for the whole
read-modify-write and never perform I/O, so callers dispatch the returned
decisions after the lock is released.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from src.alerts.config import AlertConfig
from src.alerts.schemas import AlertState, FiredTier, Tier
from src.alerts.store import AlertStateStore
from src.alerts.triggers import unfired_matches

logger = logging.getLogger(__name__)

# (message_id, reason) with reason in {"evicted", "expired"}
RemovalListener = Callable[[str, str], None]


@dataclass
class EvaluatorStats:
    """Running counters for the evaluator (since process start)."""

    evaluations: int = 0
    duplicates: int = 0
    fired: int = 0
    suppressed: int = 0
    evicted: int = 0
    expired: int = 0


class ThresholdEvaluator:
    """
    Decides which tiers fire for a (message id, value) observation.

    Usage:
        evaluator = ThresholdEvaluator(tiers, capacity=300)
        for fired in evaluator.evaluate("123", 650):
            await dispatcher.dispatch(Alert.from_fired(fired))
    """

    def __init__(
        self,
        tiers: Iterable[Tier],
        capacity: int = 300,
        clock: Callable[[], float] = time.time,
        on_removed: RemovalListener | None = None,
    ):
        """
        Initialize the evaluator.

        Args:
            tiers: Ordered tier table
            capacity: Maximum number of tracked messages
            clock: Returns current time in epoch seconds
            on_removed: Called with (message_id, reason) for each eviction
                or expiry, while the lock is held
        """
        self._tiers: tuple[Tier, ...] = tuple(tiers)
        self._store = AlertStateStore(capacity=capacity)
        self._lock = threading.Lock()
        self._clock = clock
        self._on_removed = on_removed
        self._stats = EvaluatorStats()

    @classmethod
    def from_config(
        cls,
        config: AlertConfig,
        clock: Callable[[], float] = time.time,
        on_removed: RemovalListener | None = None,
    ) -> "ThresholdEvaluator":
        return cls(
            tiers=config.tiers,
            capacity=config.store_capacity,
            clock=clock,
            on_removed=on_removed,
        )

    @property
    def tiers(self) -> tuple[Tier, ...]:
        return self._tiers

    @property
    def capacity(self) -> int:
        return self._store.capacity

    @property
    def stats(self) -> EvaluatorStats:
        return self._stats

    def tracked_count(self) -> int:
        with self._lock:
            return self._store.size()

    def is_tracked(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._store

    def snapshot(self, message_id: str) -> AlertState | None:
        """Return a copy of a message's state (for inspection and tests)."""
        with self._lock:
            state = self._store.get(message_id)
            if state is None:
                return None
            return AlertState(
                last_value=state.last_value,
                fired_at=dict(state.fired_at),
                created_at=state.created_at,
            )

    def evaluate(self, message_id: str, value: int) -> list[FiredTier]:
        """
        Apply one observation and return the tiers that fire now.

        Fired markers are recorded before this returns; delivery outcome
        does not affect them.

        Args:
            message_id: Message identifier
            value: Representative heart count

        Returns:
            Firing decisions in tier declaration order (possibly empty)
        """
        with self._lock:
            self._stats.evaluations += 1
            now = self._clock()

            state = self._store.get(message_id)
            if state is None:
                state = AlertState(last_value=value, created_at=now)
                evicted = self._store.put(message_id, state)
                if evicted is not None:
                    self._record_removal(evicted, "evicted")
                if message_id not in self._store:
                    return []
            elif state.last_value == value:
                self._stats.duplicates += 1
                return []
            else:
                state.last_value = value

            to_fire, suppressed = unfired_matches(value, self._tiers, state)

            fired: list[FiredTier] = []
            for tier in to_fire:
                state.fired_at[tier.name] = now
                fired.append(
                    FiredTier(tier=tier, message_id=message_id, value=value, fired_at=now)
                )
                logger.info(
                    "Tier %s fired for message %s (value=%d)",
                    tier.name, message_id, value,
                )
            for tier in suppressed:
                logger.info(
                    "Tier %s suppressed for message %s (value=%d, already fired)",
                    tier.name, message_id, value,
                )

            self._stats.fired += len(fired)
            self._stats.suppressed += len(suppressed)
            return fired

    def sweep(self, window: float, now: float | None = None) -> list[str]:
        """
        Drop every entry whose latest firing is older than ``window``.

        Args:
            window: Expiry window in seconds
            now: Current epoch seconds (defaults to the evaluator clock)

        Returns:
            Removed message ids
        """
        with self._lock:
            current = self._clock() if now is None else now
            expired = self._store.sweep_expired(now=current, window=window)
            for message_id in expired:
                self._record_removal(message_id, "expired")
            return expired

    def _record_removal(self, message_id: str, reason: str) -> None:
        if reason == "evicted":
            self._stats.evicted += 1
        else:
            self._stats.expired += 1

        if self._on_removed is None:
            return
        try:
            self._on_removed(message_id, reason)
        except Exception:
            logger.exception("Removal listener failed for message %s", message_id)
