"""
Reminder feature module: a persisted interval scheduler that nudges toward a goal
"""
from .notifier import Notifier
from .scheduler import ReminderScheduler
from .store import MemoryStorage, ReminderStore, SqlStorage

__all__ = ["ReminderScheduler", "ReminderStore", "MemoryStorage", "SqlStorage", "Notifier"]
