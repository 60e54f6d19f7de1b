"""
Reminder Scheduler: one persisted, restartable interval timer per goal
"""
import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from goal_coach.common import coerce_minutes
from goal_coach.exceptions import PersistenceError, PlatformCapabilityUnavailable, ValidationError
from goal_coach.features.reminders.store import ReminderStore
from goal_coach.schemas import ReminderConfig, ReminderState

logger = logging.getLogger("reminder_scheduler")

FireCallback = Callable[[str], Any]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReminderScheduler:
    """
    Owns the run/pause lifecycle of a single reminder cadence.

    The timer is an APScheduler interval job; the job object is private to
    this class and at most one exists per instance. Durable fields live in a
    ReminderConfig that is written through `store` after every mutation.

    Interval changes made with `configure()` while running apply to the next
    `start()`; the armed timer keeps its period.
    """

    def __init__(
        self,
        store: ReminderStore,
        on_fire: FireCallback,
        scheduler: Optional[BaseScheduler] = None,
        *,
        clock: Clock = utc_now,
        config: Optional[ReminderConfig] = None,
    ):
        self._store = store
        self._on_fire = on_fire
        self._scheduler = scheduler
        self._clock = clock
        self._lock = threading.RLock()
        self._job_id = f"goal-reminder-{uuid.uuid4().hex[:8]}"

        self._config = config if config is not None else store.load()
        self._job: Optional[Job] = None
        self._armed_interval: Optional[int] = None
        self._next_fire_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def configure(self, goal: Optional[str] = None, interval_minutes: Any = None) -> ReminderState:
        """Update goal and/or interval and persist. Does not start or stop the timer."""
        with self._lock:
            changes: dict = {}
            if goal is not None:
                changes["goal"] = goal
            if interval_minutes is not None:
                changes["interval_minutes"] = coerce_minutes(
                    interval_minutes, default=self._config.interval_minutes, minimum=1
                )
            if changes:
                self._config = self._config.model_copy(update=changes)
                self._persist()
                if self._job is not None and "interval_minutes" in changes:
                    logger.info(
                        "Interval set to %d min; takes effect on next start (armed: %d min)",
                        self._config.interval_minutes,
                        self._armed_interval,
                    )
            return self.get_state()

    def start(self) -> ReminderState:
        """
        Arm the reminder timer, replacing any timer that is already active.

        Raises:
            ValidationError: the goal is empty or whitespace only.
            PlatformCapabilityUnavailable: no usable timer capability.
        """
        with self._lock:
            if not self._config.goal.strip():
                raise ValidationError("Set a goal first.")
            if self._scheduler is None or not self._scheduler.running:
                raise PlatformCapabilityUnavailable("No running timer scheduler is available")

            self._cancel_job()

            interval = self._config.interval_minutes
            next_fire_at = self._clock() + timedelta(minutes=interval)
            try:
                self._job = self._scheduler.add_job(
                    self._tick,
                    trigger=IntervalTrigger(minutes=interval, start_date=next_fire_at, timezone=timezone.utc),
                    id=self._job_id,
                    name="Goal reminder",
                    replace_existing=True,
                    max_instances=1,
                    coalesce=True,
                )
            except Exception as e:
                logger.error("Failed to arm reminder timer: %s", e)
                self._job = None
                self._next_fire_at = None
                self._armed_interval = None
                self._set_running(False)
                raise PlatformCapabilityUnavailable(f"Could not arm reminder timer: {e}") from e

            self._armed_interval = interval
            self._next_fire_at = next_fire_at
            self._set_running(True)
            logger.info("Reminders started every %d min, next at %s", interval, next_fire_at.isoformat())
            return self.get_state()

    def stop(self) -> ReminderState:
        """Cancel the timer and persist running=false. A no-op when already stopped."""
        with self._lock:
            if self._job is None and not self._config.running:
                return self.get_state()
            self._cancel_job()
            self._next_fire_at = None
            self._armed_interval = None
            self._set_running(False)
            logger.info("Reminders stopped")
            return self.get_state()

    def get_state(self) -> ReminderState:
        with self._lock:
            return ReminderState(
                goal=self._config.goal,
                interval_minutes=self._config.interval_minutes,
                running=self._config.running,
                next_fire_at=self._next_fire_at,
            )

    @property
    def config(self) -> ReminderConfig:
        return self._config

    # ------------------------------------------------------------------
    # Process lifecycle
    # ------------------------------------------------------------------
    def restore(self) -> ReminderState:
        """Re-arm a cadence that was running before the process restarted."""
        with self._lock:
            self._config = self._store.load()
            if not self._config.running:
                return self.get_state()
            try:
                return self.start()
            except (ValidationError, PlatformCapabilityUnavailable) as e:
                logger.warning("Could not resume reminders, marking as paused: %s", e)
                self._set_running(False)
                return self.get_state()

    def shutdown(self) -> None:
        """Drop the timer but keep `running` persisted so `restore()` can resume it."""
        with self._lock:
            self._cancel_job()
            self._next_fire_at = None
            self._armed_interval = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _tick(self) -> None:
        with self._lock:
            if self._job is None:
                return
            goal = self._config.goal
            interval = self._armed_interval or self._config.interval_minutes

        try:
            self._on_fire(goal)
        except Exception as e:
            logger.error("Reminder callback failed: %s", e)

        with self._lock:
            if self._job is not None:
                self._next_fire_at = self._clock() + timedelta(minutes=interval)
                logger.debug("Next reminder at %s", self._next_fire_at.isoformat())

    def _cancel_job(self) -> None:
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            logger.debug("Reminder job %s was already gone", self._job_id)
        self._job = None

    def _set_running(self, running: bool) -> None:
        self._config = self._config.model_copy(update={"running": running})
        self._persist()

    def _persist(self) -> None:
        try:
            self._store.save(self._config)
        except PersistenceError as e:
            logger.warning("Could not persist reminder config: %s", e)
