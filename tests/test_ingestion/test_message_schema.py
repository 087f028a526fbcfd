"""Tests for ChatMessage normalization."""

from types import SimpleNamespace

from src.ingestion.schemas import ChatMessage
from tests.conftest import CHANNEL_ID, GAME_BOT_ID, make_payload, make_row


class _Component:
    def __init__(self, data):
        self._data = data

    def to_dict(self):
        return self._data


class _Broken:
    def to_dict(self):
        raise TypeError("not serializable")


class TestFromPayload:
    def test_reads_author_and_components(self):
        message = ChatMessage.from_payload(make_payload(labels=("150",)))

        assert message.id == "900000000000000001"
        assert message.author_id == GAME_BOT_ID
        assert message.channel_id == CHANNEL_ID
        assert message.components[0]["components"][0]["label"] == "150"

    def test_missing_optional_fields(self):
        message = ChatMessage.from_payload({"id": "1", "author": None, "components": None})

        assert message.author_id is None
        assert message.components == []
        assert message.content == ""


class TestFromDiscord:
    def test_serializes_components(self):
        row = make_row("1.5k")
        message = SimpleNamespace(
            id=900000000000000002,
            channel=SimpleNamespace(id=int(CHANNEL_ID)),
            author=SimpleNamespace(id=int(GAME_BOT_ID)),
            content="hearts",
            components=[_Component(row), _Broken()],
        )

        chat = ChatMessage.from_discord(message)

        assert chat.id == "900000000000000002"
        assert chat.channel_id == CHANNEL_ID
        assert chat.author_id == GAME_BOT_ID
        assert chat.components == [row]


class TestIsFrom:
    def test_matches_channel_and_author(self):
        message = ChatMessage.from_payload(make_payload())

        assert message.is_from(CHANNEL_ID, GAME_BOT_ID)
        assert not message.is_from(CHANNEL_ID, "someone-else")
        assert not message.is_from(None, GAME_BOT_ID)
