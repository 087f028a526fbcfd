"""Schema definitions for tiers, per-message alert state, and alerts.

A ``Tier`` is a named threshold band mapping a value range to a notification
audience. ``AlertState`` is the per-message record the dedup engine keeps in
its bounded store. ``Alert`` is the outbound record handed to the dispatcher,
one per fired tier.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.ingestion.schemas import ObservationSource


class Tier(BaseModel):
    """A threshold band with exclusive bounds.

    A value matches when it is strictly above ``lower_bound`` (if set) and
    strictly below ``upper_bound`` (if set).
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique tier name")
    lower_bound: int | None = Field(
        default=None,
        description="Exclusive lower bound; None means unbounded",
    )
    upper_bound: int | None = Field(
        default=None,
        description="Exclusive upper bound; None means unbounded",
    )
    audience: str = Field(
        ...,
        min_length=1,
        description="Notification target (ntfy topic or full URL)",
    )
    priority: int = Field(default=3, ge=1, le=5, description="ntfy priority 1-5")

    @model_validator(mode="after")
    def _check_bounds(self) -> "Tier":
        if (
            self.lower_bound is not None
            and self.upper_bound is not None
            and self.lower_bound >= self.upper_bound
        ):
            raise ValueError(
                f"Tier {self.name!r}: lower_bound ({self.lower_bound}) must be "
                f"below upper_bound ({self.upper_bound})"
            )
        return self

    def describe(self) -> str:
        """Human-readable band, e.g. ``100 < v < 600``."""
        if self.lower_bound is not None and self.upper_bound is not None:
            return f"{self.lower_bound} < v < {self.upper_bound}"
        if self.lower_bound is not None:
            return f"v > {self.lower_bound}"
        if self.upper_bound is not None:
            return f"v < {self.upper_bound}"
        return "any value"


@dataclass
class AlertState:
    """Alert state for one message.

    Attributes:
        last_value: Most recently observed representative value.
        fired_at: Tier name -> epoch seconds of its firing. Absent = never fired.
        created_at: Epoch seconds when the entry was inserted.
    """

    last_value: int
    fired_at: dict[str, float] = field(default_factory=dict)
    created_at: float = 0.0

    @property
    def last_fired_at(self) -> float:
        """Most recent firing timestamp across tiers, 0.0 if none fired."""
        return max(self.fired_at.values(), default=0.0)

    def has_fired(self, tier_name: str) -> bool:
        return tier_name in self.fired_at


@dataclass(frozen=True)
class FiredTier:
    """Decision produced by the evaluator: notify ``tier.audience`` about ``value``."""

    tier: Tier
    message_id: str
    value: int
    fired_at: float

    @property
    def audience(self) -> str:
        return self.tier.audience


@dataclass
class Alert:
    """An outbound notification for one fired tier.

    Attributes:
        message_id: Message whose value crossed the tier.
        tier: Tier name.
        audience: Notification target (ntfy topic or URL).
        value: Representative value that fired the tier.
        priority: ntfy priority (1-5).
        source: Observation source that produced the value.
        alert_id: UUID4 identifier.
        created_at: When the alert was created.
    """

    message_id: str
    tier: str
    audience: str
    value: int
    priority: int = 3
    source: ObservationSource = ObservationSource.MANUAL
    alert_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def from_fired(
        cls,
        fired: FiredTier,
        source: ObservationSource = ObservationSource.MANUAL,
    ) -> "Alert":
        """Create the alert for an evaluator firing decision."""
        return cls(
            message_id=fired.message_id,
            tier=fired.tier.name,
            audience=fired.tier.audience,
            value=fired.value,
            priority=fired.tier.priority,
            source=source,
            created_at=datetime.fromtimestamp(fired.fired_at, tz=timezone.utc),
        )

    @property
    def message(self) -> str:
        """Notification body."""
        return f"Value detected: {self.value}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "alert_id": self.alert_id,
            "message_id": self.message_id,
            "tier": self.tier,
            "audience": self.audience,
            "value": self.value,
            "priority": self.priority,
            "source": self.source.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }
