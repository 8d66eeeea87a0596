# models.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union


@dataclass(frozen=True)
class Daily:
    pass


@dataclass(frozen=True)
class Weekly:
    selected_weekdays: FrozenSet[int] = frozenset()


Frequency = Union[Daily, Weekly]


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def frequency_from_dict(raw: dict) -> Frequency:
    """Read the 'frequency' / 'selectedDays' pair stored on a habit."""
    if raw.get("frequency") == "weekly":
        days = raw.get("selectedDays") or raw.get("selectedWeekdays") or []
        if not isinstance(days, list):
            return Weekly(frozenset())
        # anything that is not a weekday index 0..6 simply never matches
        return Weekly(frozenset(
            d for d in days
            if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6
        ))
    return Daily()


def difficulty_from_value(value) -> Difficulty:
    """Blank or unknown difficulties read as medium."""
    try:
        return Difficulty(value or Difficulty.MEDIUM.value)
    except (TypeError, ValueError):
        return Difficulty.MEDIUM


def frequency_to_dict(frequency: Frequency) -> dict:
    if isinstance(frequency, Weekly):
        return {
            "frequency": "weekly",
            "selectedDays": sorted(frequency.selected_weekdays),
        }
    return {"frequency": "daily", "selectedDays": []}


def _parse_timestamp(raw: Optional[str]) -> datetime:
    if not raw:
        return datetime.now()
    # browsers write a trailing Z; fromisoformat only learned it in 3.11
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    stamp = datetime.fromisoformat(raw)
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone().replace(tzinfo=None)
    return stamp


@dataclass
class Habit:
    id: str
    name: str
    description: str = ""
    frequency: Frequency = field(default_factory=Daily)
    difficulty: Difficulty = Difficulty.MEDIUM
    completions: Dict[str, bool] = field(default_factory=dict)
    current_streak: int = 0
    longest_streak: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, raw: dict) -> "Habit":
        return cls(
            id=raw["id"],
            name=raw.get("name", ""),
            description=raw.get("description", ""),
            frequency=frequency_from_dict(raw),
            difficulty=difficulty_from_value(raw.get("difficulty")),
            completions={k: True for k, v in (raw.get("completions") or {}).items() if v},
            current_streak=int(raw.get("currentStreak", 0)),
            longest_streak=int(raw.get("longestStreak", 0)),
            created_at=_parse_timestamp(raw.get("createdAt")),
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "difficulty": self.difficulty.value,
            "completions": dict(self.completions),
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "createdAt": self.created_at.isoformat(),
        }
        data.update(frequency_to_dict(self.frequency))
        return data


@dataclass
class User:
    id: str
    name: str
    email: str
    password: str  # hex sha-256, never the plain text
    created_at: datetime = field(default_factory=datetime.now)
    habits: List[Habit] = field(default_factory=list)
    moods: Dict[str, int] = field(default_factory=dict)
    reflections: Dict[str, str] = field(default_factory=dict)

    def find_habit(self, habit_id: str) -> Optional[Habit]:
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None

    @classmethod
    def from_dict(cls, raw: dict) -> "User":
        return cls(
            id=raw["id"],
            name=raw.get("name", ""),
            email=raw.get("email", ""),
            password=raw.get("password", ""),
            created_at=_parse_timestamp(raw.get("createdAt")),
            habits=[Habit.from_dict(h) for h in raw.get("habits", [])],
            moods={k: int(v) for k, v in (raw.get("moods") or {}).items()},
            reflections=dict(raw.get("reflections") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "password": self.password,
            "createdAt": self.created_at.isoformat(),
            "habits": [h.to_dict() for h in self.habits],
            "moods": dict(self.moods),
            "reflections": dict(self.reflections),
        }


@dataclass
class AppData:
    users: List[User] = field(default_factory=list)
    current_user: Optional[str] = None
    theme: str = "dark"

    @classmethod
    def from_dict(cls, raw: dict) -> "AppData":
        return cls(
            users=[User.from_dict(u) for u in raw.get("users", [])],
            current_user=raw.get("currentUser"),
            theme=raw.get("theme") or "dark",
        )

    def to_dict(self) -> dict:
        return {
            "users": [u.to_dict() for u in self.users],
            "currentUser": self.current_user,
            "theme": self.theme,
        }
