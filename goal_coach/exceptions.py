"""
Error taxonomy shared by the reminder scheduler, the persistence layer and the API.
"""


class GoalCoachError(Exception):
    """Base class for all goal-coach errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(GoalCoachError):
    """A user-actionable input problem, e.g. starting reminders without a goal."""

    status_code = 400


class PersistenceError(GoalCoachError):
    """The key-value storage could not be read or written."""

    status_code = 500


class PlatformCapabilityUnavailable(GoalCoachError):
    """The host cannot provide a required capability (timer, notifications)."""

    status_code = 503
