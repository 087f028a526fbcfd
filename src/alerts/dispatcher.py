"""Notification dispatcher pacing alert delivery to push endpoints.

Every send goes through one ``asyncio.Lock`` and is separated from the
previous send by at least ``min_send_gap_seconds``, regardless of audience.
The gap clock advances after failed sends too, so a failing endpoint cannot
cause a tight loop. Failures are logged and returned, never retried;
notification failures never touch alert state (graceful degradation).

Pattern: Orchestrator, delegates to stateless channels (one per audience).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.alerts.channels import (
    DEFAULT_NTFY_BASE_URL,
    NotificationChannel,
    NtfyChannel,
    resolve_ntfy_url,
)
from src.alerts.schemas import Alert

logger = logging.getLogger(__name__)

ChannelFactory = Callable[[str], NotificationChannel]


class NotificationConfig(BaseSettings):
    """Configuration for notification dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    ntfy_base_url: str = Field(
        default=DEFAULT_NTFY_BASE_URL,
        description="ntfy server used for audiences given as bare topic names",
    )
    min_send_gap_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Minimum seconds between any two sends (global, all audiences)",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Per-request timeout for a single send",
    )
    title: str = Field(
        default="Heart Alert",
        description="Notification title header",
    )


class NotificationDispatcher:
    """
    Delivers alerts to their audience's channel, one at a time.

    Channels are created lazily per audience by ``channel_factory`` (ntfy
    by default) and cached.
    """

    def __init__(
        self,
        config: NotificationConfig | None = None,
        channel_factory: ChannelFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or NotificationConfig()
        self._channel_factory = channel_factory or self._default_channel
        self._channels: dict[str, NotificationChannel] = {}
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_send_at: float | None = None
        self._sent = 0
        self._failed = 0

    def _default_channel(self, audience: str) -> NotificationChannel:
        return NtfyChannel(
            url=resolve_ntfy_url(audience, self._config.ntfy_base_url),
            title=self._config.title,
            timeout=self._config.timeout_seconds,
        )

    @property
    def sent_count(self) -> int:
        return self._sent

    @property
    def failed_count(self) -> int:
        return self._failed

    def channel_for(self, audience: str) -> NotificationChannel:
        """Return (creating on first use) the channel for an audience."""
        channel = self._channels.get(audience)
        if channel is None:
            channel = self._channel_factory(audience)
            self._channels[audience] = channel
        return channel

    async def dispatch(self, alert: Alert) -> bool:
        """
        Send an alert to its audience, honouring the global send gap.

        Args:
            alert: Alert to deliver.

        Returns:
            True if the channel reported success.
        """
        async with self._lock:
            await self._wait_for_gap()

            channel = self.channel_for(alert.audience)
            try:
                success = await channel.send(alert)
            except Exception as e:
                logger.warning(
                    "Channel %s send error for alert %s: %s",
                    channel.name, alert.alert_id, e,
                )
                success = False
            finally:
                self._last_send_at = self._clock()

        self._record_delivery(alert, channel.name, success)
        return success

    async def _wait_for_gap(self) -> None:
        if self._last_send_at is None:
            return
        elapsed = self._clock() - self._last_send_at
        remaining = self._config.min_send_gap_seconds - elapsed
        if remaining > 0:
            logger.debug("Send gap active, waiting %.2fs", remaining)
            await self._sleep(remaining)

    def _record_delivery(self, alert: Alert, channel_name: str, success: bool) -> None:
        """Log the delivery outcome and update counters."""
        if success:
            self._sent += 1
            logger.info(
                "Alert %s delivered: tier=%s value=%d channel=%s",
                alert.alert_id, alert.tier, alert.value, channel_name,
            )
        else:
            self._failed += 1
            logger.error(
                "Alert %s delivery failed: tier=%s value=%d channel=%s",
                alert.alert_id, alert.tier, alert.value, channel_name,
            )
