"""
REST poller - periodically re-reads the newest channel messages.

Redundant with the gateway feed: it catches messages (and label edits) the
gateway missed during reconnects. Both sources hand messages to the same
handler, and the alert engine collapses repeated values, so overlapping
reports are harmless.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from src.config.settings import Settings, get_settings
from src.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from src.ingestion.schemas import ChatMessage, ObservationSource
from src.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

MessageHandler = Callable[[ChatMessage, ObservationSource], Awaitable[Any]]


class ChannelPoller:
    """
    Polls ``GET /channels/{id}/messages`` on a fixed interval.

    Only messages by the watched author are kept, and only the newest
    ``poll_batch_size`` of those are handed to the handler each cycle.
    Fetch errors yield an empty batch and are logged at most once per
    ``poll_error_log_interval_seconds``.

    Usage:
        poller = ChannelPoller(handler=service.process_message)
        await poller.start()  # Runs until stopped
    """

    def __init__(
        self,
        handler: MessageHandler,
        settings: Settings | None = None,
        http_client: HTTPClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the poller.

        Args:
            handler: Coroutine receiving each qualifying message
            settings: Application settings (default: cached settings)
            http_client: Pre-opened client (otherwise one is opened in start())
            clock: Monotonic clock used for error-log throttling
        """
        self._settings = settings or get_settings()
        self._handler = handler
        self._client = http_client
        self._clock = clock
        self._metrics = get_metrics()
        self._running = False
        self._last_error_logged_at: float | None = None
        self._last_poll_at: float | None = None
        self._polls = 0

    @property
    def url(self) -> str:
        base = self._settings.discord_api_base.rstrip("/")
        return f"{base}/channels/{self._settings.channel_id}/messages"

    @property
    def last_poll_at(self) -> float | None:
        """Epoch seconds of the last poll cycle whose fetch succeeded."""
        return self._last_poll_at

    @property
    def poll_count(self) -> int:
        return self._polls

    async def fetch_latest(self) -> list[ChatMessage]:
        """
        Fetch the newest channel messages posted by the watched author.

        Returns:
            Messages newest-first; empty on any error
        """
        return await self._fetch() or []

    async def _fetch(self) -> list[ChatMessage] | None:
        """Fetch and filter one page of messages; None if the fetch failed."""
        if self._client is None:
            raise RuntimeError("ChannelPoller has no HTTP client; call start() first")

        start = time.monotonic()
        try:
            response = await self._client.get(
                self.url,
                params={"limit": self._settings.poll_message_limit},
            )
            payload = response.json()
        except (HTTPClientError, ValueError) as e:
            self._log_poll_error(e)
            return None
        finally:
            self._metrics.record_poll(time.monotonic() - start)

        if not isinstance(payload, list):
            self._log_poll_error(ValueError(f"unexpected payload type {type(payload).__name__}"))
            return None

        messages: list[ChatMessage] = []
        for item in payload:
            if not isinstance(item, dict) or "id" not in item:
                continue
            try:
                message = ChatMessage.from_payload(item)
            except ValidationError as e:
                logger.debug("Skipping malformed message payload: %s", e)
                continue
            if message.author_id == str(self._settings.game_bot_id):
                messages.append(message)
        return messages

    async def poll_once(self) -> int:
        """
        Run one poll cycle.

        Returns:
            Number of messages handed to the handler
        """
        messages = await self._fetch()
        self._polls += 1
        if messages is None:
            return 0

        batch = messages[: self._settings.poll_batch_size]

        for message in batch:
            try:
                await self._handler(message, ObservationSource.POLL)
            except Exception:
                logger.exception("Poll handler failed for message %s", message.id)

        self._last_poll_at = time.time()
        return len(batch)

    async def start(self) -> None:
        """Poll until stop() is called."""
        self._running = True
        interval = self._settings.poll_interval_seconds
        logger.info(
            "Starting channel poller (interval=%.1fs, limit=%d, batch=%d)",
            interval,
            self._settings.poll_message_limit,
            self._settings.poll_batch_size,
        )

        if self._client is not None:
            await self._loop(interval)
            return

        token = self._settings.bot_token.get_secret_value() if self._settings.bot_token else None
        retry = RetryConfig(
            max_retries=self._settings.max_http_retries,
            max_backoff_seconds=self._settings.max_backoff_seconds,
        )
        async with HTTPClient(
            retry_config=retry,
            timeout=self._settings.http_timeout_seconds,
            bot_token=token,
        ) as client:
            self._client = client
            try:
                await self._loop(interval)
            finally:
                self._client = None

    async def _loop(self, interval: float) -> None:
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Poll cycle failed")
            await asyncio.sleep(interval)
        logger.info("Channel poller stopped")

    def stop(self) -> None:
        self._running = False

    def _log_poll_error(self, error: Exception) -> None:
        self._metrics.record_poll_error(type(error).__name__)

        now = self._clock()
        interval = self._settings.poll_error_log_interval_seconds
        if self._last_error_logged_at is None or now - self._last_error_logged_at > interval:
            logger.error("REST poll error: %s", error)
            self._last_error_logged_at = now
        else:
            logger.debug("REST poll error (throttled): %s", error)
