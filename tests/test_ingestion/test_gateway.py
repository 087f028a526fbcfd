"""Tests for the gateway feed."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from src.config.settings import Settings
from src.ingestion.gateway import GatewayFeed, build_intents
from src.ingestion.schemas import ObservationSource
from tests.conftest import CHANNEL_ID, GAME_BOT_ID, make_row


class _Component:
    def __init__(self, data):
        self._data = data

    def to_dict(self):
        return self._data


def _discord_message(channel_id=CHANNEL_ID, author_id=GAME_BOT_ID, labels=("650",)):
    return SimpleNamespace(
        id=900000000000000010,
        channel=SimpleNamespace(id=int(channel_id)),
        author=SimpleNamespace(id=int(author_id)),
        content="",
        components=[_Component(make_row(*labels))],
    )


class FakeClient:
    """Stands in for discord.Client: start() either raises or blocks until closed."""

    def __init__(self, feed, outcome):
        self.feed = feed
        self.outcome = outcome
        self.tokens: list[str] = []
        self._closed = asyncio.Event()

    async def start(self, token):
        self.tokens.append(token)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        self.feed._on_connected("game-watcher#0001")
        await self._closed.wait()

    def is_closed(self):
        return self._closed.is_set()

    async def close(self):
        self._closed.set()


@pytest.fixture
def handler():
    return AsyncMock(return_value=[])


def test_intents():
    intents = build_intents()

    assert intents.guilds
    assert intents.guild_messages
    assert intents.message_content
    assert not intents.members


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_routes_watched_message(self, handler, test_settings):
        feed = GatewayFeed(handler=handler, settings=test_settings)

        assert await feed.handle_message(_discord_message()) is True

        handler.assert_awaited_once()
        chat_message, source = handler.await_args.args
        assert chat_message.id == "900000000000000010"
        assert chat_message.components[0]["components"][0]["label"] == "650"
        assert source == ObservationSource.GATEWAY
        assert feed.messages_handled == 1

    @pytest.mark.asyncio
    async def test_ignores_other_channel(self, handler, test_settings):
        feed = GatewayFeed(handler=handler, settings=test_settings)

        assert await feed.handle_message(_discord_message(channel_id="5")) is False
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignores_other_author(self, handler, test_settings):
        feed = GatewayFeed(handler=handler, settings=test_settings)

        assert await feed.handle_message(_discord_message(author_id="5")) is False
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_error_is_contained(self, test_settings):
        handler = AsyncMock(side_effect=RuntimeError("boom"))
        feed = GatewayFeed(handler=handler, settings=test_settings)

        assert await feed.handle_message(_discord_message()) is False


class TestLoginLoop:
    @pytest.mark.asyncio
    async def test_retries_until_connected(self, handler, test_settings):
        outcomes = [discord.LoginFailure("bad token"), RuntimeError("network"), None]
        clients: list[FakeClient] = []
        delays: list[float] = []

        def factory(feed):
            client = FakeClient(feed, outcomes[len(clients)])
            clients.append(client)
            return client

        async def fake_sleep(delay):
            delays.append(delay)

        feed = GatewayFeed(
            handler=handler,
            settings=test_settings,
            client_factory=factory,
            sleep=fake_sleep,
        )

        task = asyncio.create_task(feed.start())
        for _ in range(50):
            if feed.connected:
                break
            await asyncio.sleep(0)

        assert feed.connected
        assert len(clients) == 3
        assert len(delays) == 2
        assert feed.login_attempts == 0
        assert clients[-1].tokens == ["test-token"]

        await feed.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert not feed.connected
        assert len(clients) == 3

    @pytest.mark.asyncio
    async def test_requires_token(self, handler):
        settings = Settings(channel_id=CHANNEL_ID, game_bot_id=GAME_BOT_ID, bot_token=None)
        feed = GatewayFeed(handler=handler, settings=settings)

        with pytest.raises(ValueError):
            await feed.start()
