"""Signed-in user state and every command that mutates it.

The session owns the app-data blob: it loads it from a store once, applies
commands to the in-memory records and saves the whole blob after each one.
Streak numbers are derived by stats_engine and written back here.
"""

import hashlib
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from config import Settings, load_settings
from dates import date_key
from exceptions import (
    AuthError,
    HabitNotFoundError,
    NotSignedInError,
    ValidationError,
)
from logger import get_logger
from models import AppData, Daily, Difficulty, Frequency, Habit, User, Weekly
from repo_json import JSONRepo, Store
from stats_engine import compute_streaks, is_applicable, toggle_completion

log = get_logger("session")

MOOD_MIN, MOOD_MAX = 1, 5

MOTIVATIONAL_QUOTES = [
    "Success is the sum of small efforts repeated day in and day out, {name}!",
    "You don't have to be great to start, but you have to start to be great, {name}!",
    "The secret of getting ahead is getting started, {name}.",
    "Every accomplishment starts with the decision to try, {name}!",
    "Small daily improvements over time lead to stunning results, {name}!",
    "Your future is created by what you do today, {name}, not tomorrow.",
    "Don't watch the clock, {name}; do what it does. Keep going!",
    "The only way to do great work is to love what you do, {name}.",
    "Believe you can and you're halfway there, {name}!",
    "Progress, not perfection, {name}. Keep moving forward!",
]

_ID_ALPHABET = string.digits + string.ascii_lowercase


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def generate_id() -> str:
    """<epoch ms>-<9 base36 chars>"""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


@dataclass(frozen=True)
class DailyProgress:
    completed: int
    total: int
    percent: float


class Session:
    def __init__(self, store: Store, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or datetime.now
        self.data = AppData.from_dict(store.load())
        self.current_user: Optional[User] = None
        if self.data.current_user:
            self.current_user = self._find_user_by_id(self.data.current_user)

    # -------- Persistence --------
    def _save(self) -> bool:
        ok = self.store.save(self.data.to_dict())
        if not ok:
            log.error("Could not persist app data")
        return ok

    def _find_user_by_id(self, user_id: str) -> Optional[User]:
        return next((u for u in self.data.users if u.id == user_id), None)

    def _require_user(self) -> User:
        if self.current_user is None:
            raise NotSignedInError()
        return self.current_user

    def _require_habit(self, habit_id: str) -> Habit:
        habit = self._require_user().find_habit(habit_id)
        if habit is None:
            raise HabitNotFoundError(habit_id)
        return habit

    def _refresh_streaks(self, habit: Habit, reference):
        streaks = compute_streaks(habit.frequency, habit.completions, reference)
        habit.current_streak = streaks.current_streak
        habit.longest_streak = streaks.longest_streak

    @property
    def theme(self) -> str:
        return self.data.theme

    # -------- Accounts --------
    def sign_up(self, name: str, email: str, password: str) -> User:
        if not name or not email or not password:
            raise ValidationError("All fields are required")
        if any(u.email == email for u in self.data.users):
            raise AuthError(f"An account for {email} already exists", hint="Sign in instead")

        user = User(
            id=generate_id(),
            name=name,
            email=email,
            password=hash_password(password),
            created_at=self.clock(),
        )
        self.data.users.append(user)
        self.data.current_user = user.id
        self.current_user = user
        self._save()
        log.info("Signed up user %s", user.id)
        return user

    def sign_in(self, email: str, password: str) -> bool:
        hashed = hash_password(password)
        user = next(
            (u for u in self.data.users if u.email == email and u.password == hashed),
            None,
        )
        if user is None:
            log.info("Rejected sign-in for %s", email)
            return False
        self.data.current_user = user.id
        self.current_user = user
        self._save()
        return True

    def sign_out(self):
        self.data.current_user = None
        self.current_user = None
        self._save()

    def toggle_theme(self) -> str:
        self.data.theme = "light" if self.data.theme == "dark" else "dark"
        self._save()
        return self.data.theme

    # -------- Habits --------
    def add_habit(
        self,
        name: str,
        description: str = "",
        frequency: Optional[Frequency] = None,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> Habit:
        user = self._require_user()
        if not name or not name.strip():
            raise ValidationError("Habit name is required", field="name")
        habit = Habit(
            id=generate_id(),
            name=name,
            description=description,
            frequency=frequency if frequency is not None else Daily(),
            difficulty=Difficulty(difficulty),
            created_at=self.clock(),
        )
        user.habits.append(habit)
        self._save()
        return habit

    def update_habit(self, habit_id: str, **changes) -> Habit:
        """Change name/description/frequency/difficulty of a habit."""
        habit = self._require_habit(habit_id)
        editable = {"name", "description", "frequency", "difficulty"}
        unknown = set(changes) - editable
        if unknown:
            raise ValidationError(f"Cannot update {', '.join(sorted(unknown))}")
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("Habit name is required", field="name")
        if "frequency" in changes and not isinstance(changes["frequency"], (Daily, Weekly)):
            raise ValidationError("Frequency must be Daily or Weekly", field="frequency")
        if "difficulty" in changes:
            changes["difficulty"] = Difficulty(changes["difficulty"])
        for name, value in changes.items():
            setattr(habit, name, value)
        if "frequency" in changes:
            # longest streak depends on the gap rule of the frequency
            self._refresh_streaks(habit, self.clock())
        self._save()
        return habit

    def delete_habit(self, habit_id: str):
        user = self._require_user()
        habit = self._require_habit(habit_id)
        user.habits.remove(habit)
        self._save()

    def toggle_habit_completion(self, habit_id: str, on) -> Habit:
        habit = self._require_habit(habit_id)
        habit.completions = toggle_completion(habit.completions, on)
        # same reference date as the toggled day
        self._refresh_streaks(habit, on)
        self._save()
        return habit

    # -------- Mood & reflections --------
    def set_mood(self, on, score: int):
        user = self._require_user()
        if not isinstance(score, int) or isinstance(score, bool) or not MOOD_MIN <= score <= MOOD_MAX:
            raise ValidationError(f"Mood must be between {MOOD_MIN} and {MOOD_MAX}", field="mood")
        user.moods[date_key(on)] = score
        self._save()

    def set_reflection(self, on, text: str):
        user = self._require_user()
        user.reflections[date_key(on)] = text
        self._save()

    # -------- Dashboard helpers --------
    def habits_for(self, on) -> List[Habit]:
        return [h for h in self._require_user().habits if is_applicable(h, on)]

    def daily_progress(self, on) -> DailyProgress:
        key = date_key(on)
        due = self.habits_for(on)
        completed = sum(1 for h in due if key in h.completions)
        percent = completed / len(due) * 100 if due else 0.0
        return DailyProgress(completed, len(due), percent)

    def best_habit(self) -> Optional[Habit]:
        best = None
        for habit in self._require_user().habits:
            best_streak = best.current_streak if best else 0
            if habit.current_streak > best_streak:
                best = habit
        return best

    def daily_quote(self, today=None) -> str:
        today = today or self.clock()
        quote = MOTIVATIONAL_QUOTES[today.timetuple().tm_yday % len(MOTIVATIONAL_QUOTES)]
        name = self.current_user.name if self.current_user and self.current_user.name else "there"
        return quote.replace("{name}", name)

    def day_summary(self, on) -> dict:
        """What a calendar cell shows for one day."""
        user = self._require_user()
        key = date_key(on)
        completed = sum(1 for h in user.habits if key in h.completions)
        total = len(user.habits)
        return {
            "date": key,
            "completedHabits": completed,
            "totalHabits": total,
            "completionRate": completed / total * 100 if total else 0.0,
            "mood": user.moods.get(key),
            "hasReflection": bool(user.reflections.get(key)),
        }


def open_session(settings: Optional[Settings] = None) -> Session:
    """Session over the JSON file named by the settings."""
    settings = settings or load_settings()
    return Session(JSONRepo(settings.data_path, settings.storage_key))
