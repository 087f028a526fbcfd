"""Alert service: the single entry point both observation sources call.

Evaluation (synchronous, under the evaluator's lock) always completes before
any notification is sent; dispatch happens afterwards, one alert at a time,
through the dispatcher's global send gap. Nothing here raises to the
caller: failures are logged and surface only as a missing alert.
"""

import asyncio
import logging
import time

from src.alerts.config import AlertConfig
from src.alerts.dispatcher import NotificationConfig, NotificationDispatcher
from src.alerts.evaluator import ThresholdEvaluator
from src.alerts.schemas import Alert
from src.extraction.extractor import observe
from src.ingestion.schemas import ChatMessage, ObservationSource
from src.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


class AlertService:
    """Orchestrator for threshold evaluation, dedup and notification.

    Owns the periodic expiry sweep as well, so every mutation of alert
    state goes through the one evaluator instance.
    """

    def __init__(
        self,
        evaluator: ThresholdEvaluator,
        dispatcher: NotificationDispatcher,
        config: AlertConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._evaluator = evaluator
        self._dispatcher = dispatcher
        self._config = config or AlertConfig()
        self._metrics = metrics or get_metrics()
        self._running = False
        self._alerts_fired = 0

    @classmethod
    def from_config(
        cls,
        config: AlertConfig | None = None,
        notification_config: NotificationConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> "AlertService":
        """Build the evaluator and dispatcher from configuration."""
        config = config or AlertConfig()
        metrics = metrics or get_metrics()
        evaluator = ThresholdEvaluator.from_config(
            config,
            on_removed=lambda _message_id, reason: metrics.record_removal(reason),
        )
        dispatcher = NotificationDispatcher(config=notification_config)
        return cls(evaluator, dispatcher, config=config, metrics=metrics)

    @property
    def evaluator(self) -> ThresholdEvaluator:
        return self._evaluator

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def alerts_fired(self) -> int:
        return self._alerts_fired

    async def on_observation(
        self,
        message_id: str,
        value: int | None,
        source: ObservationSource = ObservationSource.MANUAL,
    ) -> list[Alert]:
        """
        Evaluate one observation and notify every tier that fires.

        Repeating an observation with the same value is a no-op, so both
        sources may report the same message freely.

        Args:
            message_id: Message identifier
            value: Representative heart count (None is ignored)
            source: Observation source

        Returns:
            Alerts created for newly fired tiers (already dispatched)
        """
        if value is None:
            return []

        try:
            fired = self._evaluator.evaluate(message_id, value)
        except Exception:
            logger.exception(
                "Evaluation failed for message %s (value=%s, source=%s)",
                message_id, value, source.value,
            )
            self._metrics.record_observation(source, "error")
            return []

        self._metrics.set_store_size(self._evaluator.tracked_count())
        self._metrics.record_observation(source, "fired" if fired else "no_alert")

        alerts = [Alert.from_fired(f, source=source) for f in fired]
        for alert in alerts:
            self._alerts_fired += 1
            self._metrics.record_fired(alert.tier)
            logger.info(
                "%s alert %d (msg %s, via %s)",
                alert.tier.upper(), alert.value, alert.message_id, source.value,
            )
            await self._deliver(alert)

        return alerts

    async def process_message(
        self,
        message: ChatMessage,
        source: ObservationSource,
    ) -> list[Alert]:
        """
        Extract the representative heart count and evaluate it.

        Args:
            message: Normalized message from the watched author
            source: Observation source

        Returns:
            Alerts created for newly fired tiers
        """
        observation = observe(message, source=source)
        if observation is None:
            self._metrics.record_skipped(source)
            return []

        logger.debug(
            "(%s) hearts=%s max=%d msg=%s",
            source.value, observation.values, observation.value, message.id,
        )
        return await self.on_observation(
            observation.message_id, observation.value, source=source,
        )

    async def _deliver(self, alert: Alert) -> None:
        start = time.monotonic()
        try:
            success = await self._dispatcher.dispatch(alert)
        except Exception:
            logger.exception("Dispatch raised for alert %s", alert.alert_id)
            success = False
        self._metrics.record_notification(
            alert.audience, success, latency=time.monotonic() - start,
        )

    def sweep(self) -> list[str]:
        """Run one expiry sweep now; no-op when expiry is disabled."""
        window = self._config.expiry_window_seconds
        if window is None:
            return []
        expired = self._evaluator.sweep(window)
        if expired:
            logger.info(
                "Expired %d alert states (tracked=%d)",
                len(expired), self._evaluator.tracked_count(),
            )
        self._metrics.set_store_size(self._evaluator.tracked_count())
        return expired

    async def run_sweeper(self) -> None:
        """Sweep expired state every ``sweep_interval_seconds`` until stopped."""
        if not self._config.sweep_enabled:
            logger.info("Alert state expiry disabled")
            return

        self._running = True
        interval = self._config.sweep_interval_seconds
        logger.info(
            "Alert state sweeper started (interval=%.0fs, window=%.0fs)",
            interval, self._config.expiry_window_seconds,
        )
        while self._running:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Alert state sweep failed")

    def stop(self) -> None:
        self._running = False
