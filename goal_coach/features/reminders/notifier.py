"""
Notification sink used as the scheduler's fire callback.

Every reminder is kept as an in-app nudge. A push notification is only sent
when permission is granted and a push URL is configured.
"""
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional

import httpx

from goal_coach.features.reminders.coach import generate_message
from goal_coach.schemas import NotificationPermission, Nudge

logger = logging.getLogger("notifier")

NOTIFICATION_TITLE = "Time to move your goal"
NOTIFICATION_TAG = "goal-reminder"


def parse_permission(value) -> NotificationPermission:
    try:
        return NotificationPermission(value)
    except ValueError:
        logger.warning("Unknown notification permission %r, using 'default'", value)
        return NotificationPermission.default


class Notifier:
    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.default,
        push_url: Optional[str] = None,
        *,
        timeout: float = 10,
        history_size: int = 20,
        message_factory: Callable[[str], str] = generate_message,
    ):
        self.permission = parse_permission(permission)
        self.push_url = push_url
        self.timeout = timeout
        self._message_factory = message_factory
        self._history: Deque[Nudge] = deque(maxlen=max(1, history_size))
        self._lock = threading.Lock()

    def __call__(self, goal: str) -> Nudge:
        message = self._message_factory(goal)
        delivered = False
        if self.permission == NotificationPermission.granted and self.push_url:
            delivered = self._push(goal, message)

        nudge = Nudge(goal=goal, message=message, created_at=datetime.now(timezone.utc), delivered=delivered)
        with self._lock:
            self._history.append(nudge)
        logger.info("Nudge for goal %r (push delivered: %s)", goal, delivered)
        return nudge

    def recent(self, limit: Optional[int] = None) -> List[Nudge]:
        """Recent nudges, newest first."""
        with self._lock:
            items = list(reversed(self._history))
        return items[:limit] if limit is not None else items

    def set_permission(self, permission: NotificationPermission) -> None:
        self.permission = NotificationPermission(permission)
        logger.info("Notification permission set to %s", self.permission.value)

    def _push(self, goal: str, message: str) -> bool:
        payload = {
            "title": NOTIFICATION_TITLE,
            "body": message,
            "tag": NOTIFICATION_TAG,
            "goal": goal,
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(self.push_url, json=payload)
                resp.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.warning("Push notification rejected (%s)", e.response.status_code)
        except httpx.HTTPError as e:
            logger.error("Push notification error: %s", e)
        return False
