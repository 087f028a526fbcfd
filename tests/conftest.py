"""Pytest fixtures for heart-monitor tests."""

import pytest
from pydantic import SecretStr

from src.config.settings import Settings
from src.ingestion.schemas import ChatMessage

CHANNEL_ID = "111111111111111111"
GAME_BOT_ID = "222222222222222222"


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        bot_token=SecretStr("test-token"),
        channel_id=CHANNEL_ID,
        game_bot_id=GAME_BOT_ID,
        discord_api_base="https://discord.test/api/v10",
        poll_interval_seconds=0.01,
        login_retry_seconds=0.01,
        login_max_backoff_seconds=0.05,
    )


def make_row(*labels, heart: bool = True) -> dict:
    """An action row of buttons with the given labels."""
    elements = []
    for label in labels:
        element = {"type": 2, "label": label}
        if heart:
            element["emoji"] = {"name": "❤️"}
        elements.append(element)
    return {"type": 1, "components": elements}


def make_payload(
    message_id: str = "900000000000000001",
    labels: tuple = ("150",),
    author_id: str = GAME_BOT_ID,
    channel_id: str = CHANNEL_ID,
) -> dict:
    """A REST message payload as returned by the messages endpoint."""
    return {
        "id": message_id,
        "channel_id": channel_id,
        "author": {"id": author_id, "username": "game-bot"},
        "content": "",
        "components": [make_row(*labels)] if labels else [],
    }


@pytest.fixture
def heart_message() -> ChatMessage:
    """A game bot message carrying two heart buttons."""
    return ChatMessage.from_payload(make_payload(labels=("120", "1.5k")))
