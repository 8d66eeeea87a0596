"""
Error hierarchy for the habit tracker.

- HabitTrackerError: base for every known failure
- ConfigError: settings file missing pieces or malformed
- ValidationError: a command got input it cannot accept
- AuthError / NotSignedInError: sign-up, sign-in and session state
- HabitNotFoundError: a habit id that the signed-in user does not own
"""
from typing import Optional


class HabitTrackerError(Exception):
    """Base class. Catch this to handle every expected failure."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class ConfigError(HabitTrackerError):
    def __init__(self, message: str, config_path: Optional[str] = None):
        hint = f"Check the settings file: {config_path}" if config_path else "Check the settings file format"
        super().__init__(message, hint)
        self.config_path = config_path


class ValidationError(HabitTrackerError):
    """Raised when a command gets a value it cannot store."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AuthError(HabitTrackerError):
    pass


class NotSignedInError(AuthError):
    def __init__(self, message: str = "No user is signed in"):
        super().__init__(message, hint="Sign in or sign up first")


class HabitNotFoundError(HabitTrackerError):
    def __init__(self, habit_id: str):
        super().__init__(f"Habit '{habit_id}' not found")
        self.habit_id = habit_id
