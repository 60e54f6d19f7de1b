from typing import Any, Optional
from urllib.parse import urlencode

from goal_coach.common import coerce_minutes
from goal_coach.schemas import ReminderConfig


def build_share_link(base_url: str, goal: str, interval_minutes: int) -> str:
    """Encode goal and interval into a setup link."""
    query = urlencode({"goal": goal, "interval": str(interval_minutes)})
    return f"{base_url.rstrip('/')}/?{query}"


def apply_share_params(config: ReminderConfig, goal: Optional[str] = None, interval: Any = None) -> ReminderConfig:
    """
    Let link parameters override persisted values.

    A present interval is floored to 1; a malformed one keeps the current value.
    """
    changes: dict = {}
    if goal is not None:
        changes["goal"] = goal
    if interval is not None:
        changes["interval_minutes"] = coerce_minutes(interval, default=config.interval_minutes, minimum=1)
    return config.model_copy(update=changes) if changes else config
