import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from goal_coach import schemas
from goal_coach.config import get_settings
from goal_coach.features.calendar import export as calendar_export
from goal_coach.features.calendar import parse_export_params
from goal_coach.features.reminders import Notifier, ReminderScheduler
from goal_coach.features.reminders.coach import generate_message
from goal_coach.features.reminders.links import apply_share_params, build_share_link

logger = logging.getLogger("routes")
router = APIRouter()


def get_reminders(request: Request) -> ReminderScheduler:
    return request.app.state.reminders


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


# ---------------------------------------------------------------------------
# Calendar export
# ---------------------------------------------------------------------------
@router.get("/api/ics", tags=["Calendar"])
async def download_ics(
    title: Optional[str] = None,
    interval: Optional[str] = None,
    duration: Optional[str] = None,
):
    """Recurring-event calendar file for the given title and cadence."""
    req = parse_export_params(title, interval, duration)
    doc = calendar_export(req.title, req.interval_minutes, req.alarm_duration_minutes)
    return Response(
        content=doc.body,
        media_type=doc.content_type,
        headers={"Content-Disposition": doc.content_disposition},
    )


# ---------------------------------------------------------------------------
# Reminder lifecycle
# ---------------------------------------------------------------------------
@router.get("/reminder", response_model=schemas.ReminderState, tags=["Reminders"])
async def get_reminder(reminders: ReminderScheduler = Depends(get_reminders)):
    return reminders.get_state()


@router.put("/reminder", response_model=schemas.ReminderState, tags=["Reminders"])
async def update_reminder(body: schemas.ReminderUpdate, reminders: ReminderScheduler = Depends(get_reminders)):
    return reminders.configure(goal=body.goal, interval_minutes=body.interval_minutes)


@router.post("/reminder/start", response_model=schemas.ReminderState, tags=["Reminders"])
async def start_reminder(reminders: ReminderScheduler = Depends(get_reminders)):
    return reminders.start()


@router.post("/reminder/stop", response_model=schemas.ReminderState, tags=["Reminders"])
async def stop_reminder(reminders: ReminderScheduler = Depends(get_reminders)):
    return reminders.stop()


@router.get("/reminder/share-link", response_model=schemas.ShareLinkOut, tags=["Reminders"])
async def get_share_link(reminders: ReminderScheduler = Depends(get_reminders)):
    state = reminders.get_state()
    url = build_share_link(get_settings().public_base_url, state.goal, state.interval_minutes)
    return {"url": url}


@router.post("/reminder/open-link", response_model=schemas.ReminderState, tags=["Reminders"])
async def open_share_link(
    goal: Optional[str] = None,
    interval: Optional[str] = None,
    reminders: ReminderScheduler = Depends(get_reminders),
):
    """Apply `goal`/`interval` from a shared link over the persisted values."""
    if goal is None and interval is None:
        return reminders.get_state()
    updated = apply_share_params(reminders.config, goal=goal, interval=interval)
    logger.info("Applied shared link (goal=%s, interval=%s)", goal is not None, interval)
    return reminders.configure(goal=updated.goal, interval_minutes=updated.interval_minutes)


@router.get("/reminder/coach", response_model=schemas.CoachMessageOut, tags=["Reminders"])
async def get_coach_message(reminders: ReminderScheduler = Depends(get_reminders)):
    return {"message": generate_message(reminders.get_state().goal)}


@router.get("/reminder/nudges", response_model=schemas.NudgeList, tags=["Reminders"])
async def list_nudges(limit: int = 20, notifier: Notifier = Depends(get_notifier)):
    nudges = notifier.recent(max(0, limit))
    return {"count": len(nudges), "nudges": nudges}


# ---------------------------------------------------------------------------
# Notification permission
# ---------------------------------------------------------------------------
@router.get("/notifications/permission", response_model=schemas.PermissionBody, tags=["Notifications"])
async def get_permission(notifier: Notifier = Depends(get_notifier)):
    return {"permission": notifier.permission}


@router.put("/notifications/permission", response_model=schemas.PermissionBody, tags=["Notifications"])
async def set_permission(body: schemas.PermissionBody, notifier: Notifier = Depends(get_notifier)):
    notifier.set_permission(body.permission)
    return {"permission": notifier.permission}
