"""Notification channel implementations for alert delivery.

Provides an ABC for notification channels plus the ntfy implementation used
for heart alerts. Channels report delivery success as a boolean and never
raise; retries and pacing are the dispatcher's concern.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from src.alerts.schemas import Alert

logger = logging.getLogger(__name__)

DEFAULT_NTFY_BASE_URL = "https://ntfy.sh"


def resolve_ntfy_url(audience: str, base_url: str = DEFAULT_NTFY_BASE_URL) -> str:
    """Map an audience to a publish URL.

    A full ``http(s)://`` URL is used as-is; anything else is treated as a
    topic name on ``base_url``.
    """
    if audience.startswith(("http://", "https://")):
        return audience
    return f"{base_url.rstrip('/')}/{audience.strip('/')}"


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'ntfy:topic')."""

    @abstractmethod
    async def send(self, alert: Alert) -> bool:
        """Deliver an alert through this channel.

        Args:
            alert: Alert to deliver.

        Returns:
            True if delivery succeeded, False otherwise.
        """


class NtfyChannel(NotificationChannel):
    """Publishes alerts to an ntfy topic as a plain-text POST.

    Creates a new ``httpx.AsyncClient`` per call (short-lived, no pooling);
    alerts are rare and paced by the dispatcher.
    """

    def __init__(
        self,
        url: str,
        title: str = "Heart Alert",
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._title = title
        self._timeout = timeout

    @property
    def name(self) -> str:
        return f"ntfy:{self._url.rsplit('/', 1)[-1]}"

    @property
    def url(self) -> str:
        return self._url

    def _build_headers(self, alert: Alert) -> dict[str, str]:
        return {
            "Title": self._title,
            "Priority": str(alert.priority),
        }

    async def send(self, alert: Alert) -> bool:
        headers = self._build_headers(alert)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._url,
                    content=alert.message.encode("utf-8"),
                    headers=headers,
                )
                if resp.is_success:
                    return True
                logger.warning(
                    "ntfy %s returned %d for alert %s",
                    self._url, resp.status_code, alert.alert_id,
                )
                return False
        except httpx.TimeoutException:
            logger.warning(
                "ntfy %s timed out for alert %s",
                self._url, alert.alert_id,
            )
            return False
        except Exception as e:
            logger.warning(
                "ntfy %s failed for alert %s: %s",
                self._url, alert.alert_id, e,
            )
            return False
