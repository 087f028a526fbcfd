"""Alert engine: tier evaluation, per-message dedup and ntfy notification.

Components:
- Tier / AlertState / Alert: Tier table entries, per-message state, outbound alerts
- AlertConfig: Pydantic settings for tiers, store capacity and expiry
- AlertStateStore: Bounded insertion-ordered map of message id -> state
- ThresholdEvaluator: Locked state machine deciding which tiers fire
- NotificationChannel / NtfyChannel: Delivery channels
- NotificationConfig / NotificationDispatcher: Rate-gapped dispatch
- AlertService: Single entry point for both observation sources
"""

from src.alerts.channels import NotificationChannel, NtfyChannel
from src.alerts.config import DEFAULT_TIERS, AlertConfig
from src.alerts.dispatcher import NotificationConfig, NotificationDispatcher
from src.alerts.evaluator import ThresholdEvaluator
from src.alerts.schemas import Alert, AlertState, FiredTier, Tier
from src.alerts.service import AlertService
from src.alerts.store import AlertStateStore

__all__ = [
    "Alert",
    "AlertConfig",
    "AlertService",
    "AlertState",
    "AlertStateStore",
    "DEFAULT_TIERS",
    "FiredTier",
    "NotificationChannel",
    "NotificationConfig",
    "NotificationDispatcher",
    "NtfyChannel",
    "ThresholdEvaluator",
    "Tier",
]
