"""
Normalized chat message schema shared by both observation sources.

The gateway feed receives ``discord.Message`` objects while the REST poller
receives raw JSON payloads. Both are normalized into ``ChatMessage`` so the
extractor sees a single structure: ``components`` is a list of rows, each row
a mapping with its own ``components`` list of label-bearing elements.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class ObservationSource(str, Enum):
    """Where an observation came from."""

    GATEWAY = "gateway"
    POLL = "poll"
    MANUAL = "manual"


class ChatMessage(BaseModel):
    """
    A channel message reduced to the fields the monitor needs.

    ``components`` is kept as raw mappings: rows and elements are walked
    defensively by the extractor, so malformed shapes are tolerated here.
    """

    id: str = Field(..., description="Platform message identifier (snowflake)")
    channel_id: str | None = Field(default=None, description="Channel the message was posted in")
    author_id: str | None = Field(default=None, description="Author user identifier")
    content: str = Field(default="", description="Plain text content")
    components: list[Any] = Field(
        default_factory=list,
        description="Action rows, each holding label-bearing elements",
    )

    @field_validator("id", "channel_id", "author_id", mode="before")
    @classmethod
    def _coerce_snowflake(cls, v: Any) -> Any:
        """Snowflakes arrive as ints from the gateway and strings from REST."""
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("components", mode="before")
    @classmethod
    def _coerce_components(cls, v: Any) -> list[Any]:
        if isinstance(v, list):
            return v
        return []

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    def is_from(self, channel_id: str | None, author_id: str | None) -> bool:
        """Check that the message was posted in ``channel_id`` by ``author_id``."""
        return (
            channel_id is not None
            and author_id is not None
            and self.channel_id == str(channel_id)
            and self.author_id == str(author_id)
        )

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "ChatMessage":
        """
        Build from a REST message payload.

        Args:
            data: Message object as returned by ``GET /channels/{id}/messages``

        Returns:
            ChatMessage instance
        """
        author = data.get("author") or {}
        return cls(
            id=data["id"],
            channel_id=data.get("channel_id"),
            author_id=author.get("id") if isinstance(author, dict) else None,
            content=data.get("content"),
            components=data.get("components"),
        )

    @classmethod
    def from_discord(cls, message: Any) -> "ChatMessage":
        """
        Build from a ``discord.Message``.

        Components are serialized with their ``to_dict()`` so both sources
        share the REST payload shape.

        Args:
            message: discord.py message object

        Returns:
            ChatMessage instance
        """
        components: list[Any] = []
        for component in getattr(message, "components", None) or []:
            try:
                components.append(component.to_dict())
            except Exception:
                logger.debug("Skipping unserializable component on message %s", message.id)

        channel = getattr(message, "channel", None)
        author = getattr(message, "author", None)
        return cls(
            id=message.id,
            channel_id=getattr(channel, "id", None),
            author_id=getattr(author, "id", None),
            content=getattr(message, "content", ""),
            components=components,
        )
