from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationPermission(str, Enum):
    granted = "granted"
    denied = "denied"
    default = "default"


# ---------------------------------------------------------------------------
# Reminder Schemas
# ---------------------------------------------------------------------------
class ReminderConfig(BaseModel):
    """Durable reminder fields, persisted as JSON under a single storage key."""

    goal: str = Field("", description="Free-form goal text")
    interval_minutes: int = Field(25, ge=1, alias="intervalMinutes", description="Minutes between reminders")
    running: bool = Field(False, description="Whether reminders are currently active")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ReminderState(BaseModel):
    """Read-only snapshot returned by the scheduler."""

    goal: str = Field(..., description="Current goal text")
    interval_minutes: int = Field(..., description="Configured minutes between reminders")
    running: bool = Field(..., description="Whether reminders are currently active")
    next_fire_at: Optional[datetime] = Field(None, description="When the next reminder fires (UTC)")

    model_config = ConfigDict(frozen=True)


class ReminderUpdate(BaseModel):
    goal: Optional[str] = Field(None, description="New goal text; omitted keeps the current goal")
    interval_minutes: Optional[Union[int, float, str]] = Field(
        None, description="New interval; fractions are truncated, values below 1 become 1, unparseable values keep the current interval"
    )


class ShareLinkOut(BaseModel):
    url: str = Field(..., description="Link that restores the current goal and interval")


class CoachMessageOut(BaseModel):
    message: str = Field(..., description="A short motivational prompt for the current goal")


# ---------------------------------------------------------------------------
# Notification Schemas
# ---------------------------------------------------------------------------
class Nudge(BaseModel):
    goal: str = Field(..., description="Goal text at the time of the reminder")
    message: str = Field(..., description="Rendered reminder message")
    created_at: datetime = Field(..., description="When the reminder fired (UTC)")
    delivered: bool = Field(False, description="Whether a push notification was sent successfully")


class NudgeList(BaseModel):
    count: int = Field(..., description="Number of nudges returned")
    nudges: List[Nudge] = Field(..., description="Recent nudges, newest first")


class PermissionBody(BaseModel):
    permission: NotificationPermission = Field(..., description="Notification permission state")
