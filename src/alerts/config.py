"""Alert engine configuration.

Controls the tier table, the bounded alert-state store, and the optional
time-based expiry sweep. All settings can be overridden via ``ALERTS_*``
environment variables; ``ALERTS_TIERS`` takes a JSON list of tier objects
and ``ALERTS_EXPIRY_WINDOW_SECONDS=none`` disables the sweep.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.alerts.schemas import Tier

DEFAULT_TIERS: list[Tier] = [
    Tier(name="primary", lower_bound=599, audience="puppeteer-sofi", priority=5),
    Tier(
        name="secondary",
        lower_bound=100,
        upper_bound=600,
        audience="mitsuisdiva",
        priority=3,
    ),
]


class AlertConfig(BaseSettings):
    """Configuration for tier evaluation and per-message dedup state."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="none",
    )

    tiers: list[Tier] = Field(
        default_factory=lambda: list(DEFAULT_TIERS),
        description="Ordered tier table; evaluated in declaration order",
    )

    # Bounded store: FIFO eviction by insertion order
    store_capacity: int = Field(
        default=300,
        ge=1,
        description="Maximum number of messages with tracked alert state",
    )

    # Time-based expiry (None disables the sweep)
    expiry_window_seconds: float | None = Field(
        default=900.0,
        gt=0.0,
        description="Drop entries whose latest firing is older than this",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Seconds between expiry sweeps",
    )

    @field_validator("tiers")
    @classmethod
    def _unique_tier_names(cls, tiers: list[Tier]) -> list[Tier]:
        names = [t.name for t in tiers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate tier names: {duplicates}")
        return tiers

    @property
    def sweep_enabled(self) -> bool:
        return self.expiry_window_seconds is not None
