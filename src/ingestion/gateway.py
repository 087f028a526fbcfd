"""
Gateway feed - real-time message events over the Discord gateway.

New messages and edits from the watched author in the watched channel are
normalized into ``ChatMessage`` and handed to the same handler the REST
poller uses. Login is retried forever with exponential backoff.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import discord

from src.config.settings import Settings, get_settings
from src.ingestion.backoff import ExponentialBackoff
from src.ingestion.schemas import ChatMessage, ObservationSource
from src.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

MessageHandler = Callable[[ChatMessage, ObservationSource], Awaitable[Any]]


def build_intents() -> discord.Intents:
    """Guilds, guild messages and message content; nothing else."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


class _GatewayClient(discord.Client):
    """discord.py client forwarding its events to a GatewayFeed."""

    def __init__(self, feed: "GatewayFeed", **options: Any):
        super().__init__(**options)
        self._feed = feed

    async def on_ready(self) -> None:
        self._feed._on_connected(str(self.user) if self.user else "unknown")

    async def on_resumed(self) -> None:
        self._feed._on_connected(str(self.user) if self.user else "unknown")

    async def on_disconnect(self) -> None:
        self._feed._on_disconnected()

    async def on_message(self, message: discord.Message) -> None:
        await self._feed.handle_message(message)

    async def on_message_edit(self, before: discord.Message, after: discord.Message) -> None:
        # Button labels are updated by editing the message
        await self._feed.handle_message(after)


class GatewayFeed:
    """
    Wraps a discord.py client and routes qualifying messages to a handler.

    Usage:
        feed = GatewayFeed(handler=service.process_message)
        await feed.start()  # Runs until stopped
    """

    def __init__(
        self,
        handler: MessageHandler,
        settings: Settings | None = None,
        client_factory: Callable[["GatewayFeed"], discord.Client] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the feed.

        Args:
            handler: Coroutine receiving each qualifying message
            settings: Application settings (default: cached settings)
            client_factory: Builds a fresh client per login attempt
            sleep: Awaitable sleep used between login attempts
        """
        self._settings = settings or get_settings()
        self._handler = handler
        self._client_factory = client_factory or (
            lambda feed: _GatewayClient(feed, intents=build_intents())
        )
        self._sleep = sleep
        self._metrics = get_metrics()
        self._backoff = ExponentialBackoff(
            base_delay=self._settings.login_retry_seconds,
            max_delay=self._settings.login_max_backoff_seconds,
        )
        self._client: discord.Client | None = None
        self._running = False
        self._connected = False
        self._messages_handled = 0

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def messages_handled(self) -> int:
        return self._messages_handled

    @property
    def login_attempts(self) -> int:
        """Consecutive failed login attempts since the last successful connect."""
        return self._backoff.attempt

    async def handle_message(self, message: Any) -> bool:
        """
        Route one gateway message to the handler if it qualifies.

        Args:
            message: discord.py message object

        Returns:
            True if the message was handed to the handler
        """
        try:
            chat_message = ChatMessage.from_discord(message)
            if not chat_message.is_from(self._settings.channel_id, self._settings.game_bot_id):
                return False

            await self._handler(chat_message, ObservationSource.GATEWAY)
            self._messages_handled += 1
            return True
        except Exception:
            logger.exception(
                "Gateway handler failed for message %s", getattr(message, "id", "?"),
            )
            return False

    async def start(self) -> None:
        """Log in and stay connected until stop() is called."""
        if self._settings.bot_token is None:
            raise ValueError("BOT_TOKEN is required for the gateway feed")

        token = self._settings.bot_token.get_secret_value()
        self._running = True

        while self._running:
            client = self._client_factory(self)
            self._client = client
            try:
                # Returns only once the client is closed
                await client.start(token)
            except asyncio.CancelledError:
                raise
            except discord.LoginFailure as e:
                logger.error("Discord login failed: %s", e)
            except Exception as e:
                logger.error("Gateway connection failed: %s", e, exc_info=True)
            finally:
                self._on_disconnected()
                if not client.is_closed():
                    await client.close()
                self._client = None

            if not self._running:
                break

            delay = self._backoff.next_delay()
            logger.warning(
                "Retrying Discord login in %.1fs (attempt %d)", delay, self._backoff.attempt,
            )
            await self._sleep(delay)

        logger.info("Gateway feed stopped")

    async def stop(self) -> None:
        self._running = False
        if self._client is not None and not self._client.is_closed():
            await self._client.close()

    def _on_connected(self, user: str) -> None:
        if not self._connected:
            logger.info("Logged in to Discord as %s", user)
        self._connected = True
        self._backoff.reset()
        self._metrics.set_gateway_connected(True)

    def _on_disconnected(self) -> None:
        if self._connected:
            logger.warning("Discord gateway disconnected")
        self._connected = False
        self._metrics.set_gateway_connected(False)
