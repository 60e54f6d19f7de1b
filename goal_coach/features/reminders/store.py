"""
Persistence adapter for the reminder scheduler's durable fields.

The scheduler never talks to a database directly; it is handed a ReminderStore
wrapping any object that satisfies KeyValueStorage.
"""
import json
import logging
import math
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from goal_coach.exceptions import PersistenceError
from goal_coach.models import KeyValueEntry
from goal_coach.schemas import ReminderConfig

logger = logging.getLogger("reminder_store")

STORAGE_KEY = "goal-coach-state-v1"
DEFAULT_INTERVAL_MINUTES = 25


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage for tests and the `memory` backend."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class SqlStorage:
    """Key-value storage on the `kv_entries` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read key {key!r}") from e

    def set(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                self._upsert(db, key, value)
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write key {key!r}") from e

    @staticmethod
    def _upsert(db: Session, key: str, value: str) -> None:
        entry = db.get(KeyValueEntry, key)
        if entry is None:
            db.add(KeyValueEntry(key=key, value=value))
        else:
            entry.value = value


def _coerce_config(data: Dict[str, Any], default_interval: int = DEFAULT_INTERVAL_MINUTES) -> ReminderConfig:
    """Build a config field by field, defaulting whatever is malformed."""
    goal = data.get("goal")
    if not isinstance(goal, str):
        goal = ""

    interval = data.get("intervalMinutes")
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or not math.isfinite(interval):
        interval = default_interval
    interval = max(1, int(interval))

    running = data.get("running")
    if not isinstance(running, bool):
        running = False

    return ReminderConfig(goal=goal, interval_minutes=interval, running=running)


class ReminderStore:
    """Load/save a ReminderConfig as JSON under one namespaced key."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        default_interval: int = DEFAULT_INTERVAL_MINUTES,
    ):
        self.storage = storage
        self.key = key
        self.default_interval = max(1, int(default_interval))

    def defaults(self) -> ReminderConfig:
        return ReminderConfig(interval_minutes=self.default_interval)

    def load(self) -> ReminderConfig:
        """Read the stored config. Never raises; any read problem yields defaults."""
        try:
            raw = self.storage.get(self.key)
        except PersistenceError as e:
            logger.warning("Could not read reminder config, using defaults: %s", e)
            return self.defaults()
        except Exception as e:
            logger.warning("Reminder storage read failed, using defaults: %s", e)
            return self.defaults()

        if not raw:
            return self.defaults()

        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Stored reminder config is not valid JSON, using defaults")
            return self.defaults()

        if not isinstance(data, dict):
            logger.warning("Stored reminder config is not an object, using defaults")
            return self.defaults()

        return _coerce_config(data, self.default_interval)

    def save(self, config: ReminderConfig) -> None:
        """Write the config. Raises PersistenceError if the storage fails."""
        payload = json.dumps(config.model_dump(by_alias=True), ensure_ascii=False)
        try:
            self.storage.set(self.key, payload)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save reminder config: {e}") from e
        logger.debug("Saved reminder config under %s", self.key)
