"""
Thunder cloud push notifications.

Alerts go out only when at least one direction is flagged and never during
quiet hours. Failed deliveries are not retried: the next detection cycle
re-evaluates and re-sends if conditions persist.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Union

import httpx
import sentry_sdk

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.core.logging import format_token, get_logger
from thundercloud.core.quiet_hours import is_quiet_hours
from thundercloud.models import Direction

logger = get_logger(__name__)

ALERT_TITLE = "⛈️ Thunder cloud alert"
ALERT_TYPE = "thunder_cloud"
ANDROID_CHANNEL_ID = "thunder_cloud_channel"
ANDROID_COLOR = "#FF6B35"


class PushDeliveryError(Exception):
    """Raised by a push channel when a message cannot be delivered."""
    pass


class PushChannel(ABC):
    """Transport for a composed push message."""

    @abstractmethod
    async def send(self, message: Dict[str, Any]) -> None:
        ...


class FCMPushChannel(PushChannel):
    """Firebase Cloud Messaging HTTP v1 channel."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or default_settings
        self.transport = transport

        if not self.config.fcm_configured:
            logger.warning("FCM project or access token not configured - push delivery disabled")

    @property
    def endpoint(self) -> str:
        return f"{self.config.fcm_base_url}/projects/{self.config.fcm_project_id}/messages:send"

    async def send(self, message: Dict[str, Any]) -> None:
        if not self.config.fcm_configured:
            raise PushDeliveryError("FCM is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.config.fcm_timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint,
                    json={"message": message},
                    headers={
                        "Authorization": f"Bearer {self.config.fcm_access_token}",
                        "Content-Type": "application/json"
                    }
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PushDeliveryError(f"FCM rejected message: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise PushDeliveryError(f"FCM request failed: {e}") from e


def _direction_names(directions: Sequence[Union[Direction, str]]) -> list:
    return [d.value if isinstance(d, Direction) else str(d) for d in directions]


class NotificationDispatcher:
    """Composes thunder cloud alerts and hands them to a push channel."""

    def __init__(
        self,
        channel: Optional[PushChannel] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.config = config or default_settings
        self.channel = channel or FCMPushChannel(self.config)
        self.clock = clock

    def build_message(self, token: str, directions: Sequence[Union[Direction, str]]) -> Dict[str, Any]:
        """
        Compose the push payload for a set of likely directions.

        Args:
            token: Observer push token
            directions: Directions flagged likely, in canonical order

        Returns:
            FCM message dictionary
        """
        names = _direction_names(directions)
        body = f"Thunder clouds are forming to the {', '.join(names)}!"

        return {
            "token": token,
            "notification": {
                "title": ALERT_TITLE,
                "body": body,
            },
            "data": {
                "type": ALERT_TYPE,
                "directions": ",".join(names),
                "timestamp": self.clock().isoformat(),
            },
            "android": {
                "priority": "high",
                "notification": {
                    "color": ANDROID_COLOR,
                    "channel_id": ANDROID_CHANNEL_ID,
                    "default_sound": True,
                    "default_vibrate_timings": True,
                },
            },
            "apns": {
                "payload": {
                    "aps": {
                        "sound": "default",
                        "badge": 1,
                        "alert": {"title": ALERT_TITLE, "body": body},
                    },
                },
            },
        }

    async def notify(self, token: str, directions: Sequence[Union[Direction, str]]) -> bool:
        """
        Send a thunder cloud alert.

        Args:
            token: Observer push token
            directions: Directions flagged likely (possibly empty)

        Returns:
            True if a message was delivered
        """
        if not directions:
            return False

        if is_quiet_hours(self.clock(), self.config):
            logger.info(f"Quiet hours: alert suppressed for {format_token(token)}")
            return False

        message = self.build_message(token, directions)
        try:
            await self.channel.send(message)
        except Exception as e:
            logger.error(f"Alert delivery failed for {format_token(token)}: {e}")
            sentry_sdk.capture_exception(e)
            return False

        logger.info(f"Alert sent to {format_token(token)}: {message['data']['directions']}")
        return True
