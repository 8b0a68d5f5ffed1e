"""
Quiet hours (night mode) policy.

During the configured local-time window no weather is fetched and no alert
is sent. On-demand reads return a stub instead of calling the provider.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.models import Direction, RiskLevel

NIGHT_MODE_TEMPERATURE = 20.0


def is_quiet_hours(now: Optional[datetime] = None, config: Optional[Settings] = None) -> bool:
    """
    Check whether the given instant falls inside the quiet-hours window.

    Args:
        now: Timezone-aware instant (defaults to the current UTC time)
        config: Settings to read the window from

    Returns:
        True if detection and fetching should be suppressed
    """
    config = config or default_settings
    if not config.quiet_hours_enabled:
        return False

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    hour = now.astimezone(ZoneInfo(config.quiet_hours_timezone)).hour
    start = config.quiet_hours_start
    end = config.quiet_hours_end

    if start == end:
        return False
    if start > end:
        # Window wraps midnight, e.g. 20:00-08:00
        return hour >= start or hour < end
    return start <= hour < end


def create_night_mode_response() -> Dict[str, Any]:
    """Per-direction stub returned while quiet hours are in effect."""
    return {
        direction.value: {
            "analysis": {
                "isLikely": False,
                "totalScore": 0.0,
                "riskLevel": RiskLevel.NONE.value,
            },
            "temperature": NIGHT_MODE_TEMPERATURE,
        }
        for direction in Direction
    }
