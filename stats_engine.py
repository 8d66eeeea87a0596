"""Streaks, completion rates and monthly/yearly series for a single habit.

Everything here is a pure function of its arguments: callers hand in a habit
(or its completion map) plus a reference date and get plain records back.
Nothing is written to the habit; the session layer stores derived values.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List

from dates import (
    date_key,
    days_between,
    days_in_month,
    month_label,
    parse_date_key,
    weekday_index,
)
from models import Frequency, Habit, Weekly

# backward scan stops here even if every earlier day is completed
STREAK_SCAN_LIMIT = 366
WEEKLY_GAP_DAYS = 7


@dataclass(frozen=True)
class Streaks:
    current_streak: int
    longest_streak: int

    def to_dict(self) -> dict:
        return {
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
        }


@dataclass(frozen=True)
class HabitStats:
    total_completions: int
    completion_rate: float
    current_streak: int
    longest_streak: int

    def to_dict(self) -> dict:
        return {
            "totalCompletions": self.total_completions,
            "completionRate": self.completion_rate,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
        }


@dataclass(frozen=True)
class DayPoint:
    day: int
    completed: int
    date_key: str

    def to_dict(self) -> dict:
        return {"day": self.day, "completed": self.completed, "date": self.date_key}


@dataclass(frozen=True)
class MonthPoint:
    month_label: str
    completion_rate: float
    completions: int

    def to_dict(self) -> dict:
        return {
            "month": self.month_label,
            "completionRate": self.completion_rate,
            "completions": self.completions,
        }


# =========================
# Completions
# =========================

def toggle_completion(completions: Dict[str, bool], day) -> Dict[str, bool]:
    """Return a copy with the day's key flipped. Streaks are not touched."""
    key = date_key(day)
    toggled = dict(completions)
    if key in toggled:
        del toggled[key]
    else:
        toggled[key] = True
    return toggled


# =========================
# Streaks
# =========================

def _count_backward_streak(completions, start_day) -> int:
    """Consecutive completed calendar days ending at start_day."""
    length = 0
    curr = start_day
    while date_key(curr) in completions and length < STREAK_SCAN_LIMIT:
        length += 1
        curr -= timedelta(days=1)
    return length


def _run_length_from(sorted_days, start: int, weekly: bool) -> int:
    length = 1
    for j in range(start + 1, len(sorted_days)):
        gap = days_between(sorted_days[j], sorted_days[j - 1])
        if gap == 1 or (weekly and gap <= WEEKLY_GAP_DAYS):
            length += 1
        else:
            break
    return length


def _longest_run(completions, weekly: bool) -> int:
    sorted_days = [parse_date_key(k) for k in sorted(completions)]
    longest = 0
    for i in range(len(sorted_days)):
        longest = max(longest, _run_length_from(sorted_days, i, weekly))
    return longest


def compute_streaks(frequency: Frequency, completions: Dict[str, bool], reference_date) -> Streaks:
    """
    Current streak walks back day by day from reference_date and needs every
    calendar day, whatever the frequency. Longest streak scans the sorted
    history and, for weekly habits, lets runs bridge gaps of up to a week
    without checking which weekdays were selected.
    """
    if not completions:
        return Streaks(0, 0)

    current = _count_backward_streak(completions, reference_date)
    longest = _longest_run(completions, isinstance(frequency, Weekly))
    return Streaks(current, max(longest, current))


# =========================
# Summaries & series
# =========================

def habit_stats(habit: Habit, today) -> HabitStats:
    total = len(habit.completions)
    elapsed = days_between(today, habit.created_at)
    rate = round(total / elapsed * 100, 1) if elapsed > 0 else 0.0
    return HabitStats(
        total_completions=total,
        completion_rate=rate,
        current_streak=habit.current_streak,
        longest_streak=habit.longest_streak,
    )


def monthly_series(habit: Habit, month: int, year: int) -> List[DayPoint]:
    """One point per calendar day of the month (month is 1..12)."""
    points = []
    for day in range(1, days_in_month(month, year) + 1):
        key = f"{year:04d}-{month:02d}-{day:02d}"
        points.append(DayPoint(day, 1 if key in habit.completions else 0, key))
    return points


def yearly_series(habit: Habit, year: int) -> List[MonthPoint]:
    points = []
    for month in range(1, 13):
        days = monthly_series(habit, month, year)
        completed = sum(p.completed for p in days)
        points.append(
            MonthPoint(month_label(month), completed / len(days) * 100, completed)
        )
    return points


def is_applicable(habit: Habit, day) -> bool:
    """Is the habit due on this day under its frequency rule?"""
    if isinstance(habit.frequency, Weekly):
        return weekday_index(day) in habit.frequency.selected_weekdays
    return True
