import os
from datetime import datetime, timedelta, timezone

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

# Ensure .env is loaded, then FORCE in-memory storage for tests regardless of .env
load_dotenv()
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["NOTIFICATION_PERMISSION"] = "default"
os.environ.pop("NOTIFICATION_PUSH_URL", None)

from apscheduler.schedulers.background import BackgroundScheduler  # noqa: E402

from goal_coach.features.reminders import MemoryStorage, ReminderStore  # noqa: E402


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock():
    return FakeClock(datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc))


# A real APScheduler that accepts jobs but never runs them; ticks are driven by hand
@pytest.fixture()
def timer():
    scheduler = BackgroundScheduler(timezone=timezone.utc)
    scheduler.start(paused=True)
    yield scheduler
    scheduler.shutdown(wait=False)


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest.fixture()
def store(storage):
    return ReminderStore(storage)


@pytest.fixture()
def client():
    from goal_coach.main import app
    with TestClient(app) as c:
        yield c
