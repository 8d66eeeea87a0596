from datetime import date, datetime, timedelta

import pytest

from dates import date_key
from models import Daily, Weekly
from stats_engine import (
    STREAK_SCAN_LIMIT,
    compute_streaks,
    habit_stats,
    is_applicable,
    monthly_series,
    toggle_completion,
    yearly_series,
)


def _keys(*days):
    return {k: True for k in days}


def _run(end: date, length: int):
    return {date_key(end - timedelta(days=i)): True for i in range(length)}


# ---------- toggle_completion ----------

def test_toggle_adds_then_removes_key():
    added = toggle_completion({}, date(2024, 1, 5))
    assert added == {"2024-01-05": True}
    assert toggle_completion(added, date(2024, 1, 5)) == {}


def test_toggle_twice_returns_original_and_leaves_input_alone():
    original = _keys("2024-01-01", "2024-01-02")
    once = toggle_completion(original, datetime(2024, 1, 3, 18, 0))
    assert original == _keys("2024-01-01", "2024-01-02")
    assert toggle_completion(once, date(2024, 1, 3)) == original


# ---------- compute_streaks ----------

@pytest.mark.parametrize("frequency", [Daily(), Weekly(frozenset({1, 3}))])
def test_empty_completions_have_no_streaks(frequency):
    streaks = compute_streaks(frequency, {}, date(2024, 1, 5))
    assert (streaks.current_streak, streaks.longest_streak) == (0, 0)


def test_current_streak_counts_back_to_first_gap():
    today = date(2024, 3, 10)
    completions = _run(today, 3)
    completions["2024-03-06"] = True  # today-4, beyond the gap on today-3
    streaks = compute_streaks(Daily(), completions, today)
    assert streaks.current_streak == 3
    assert streaks.longest_streak == 3


def test_current_streak_is_zero_when_reference_day_missing():
    streaks = compute_streaks(Daily(), _keys("2024-01-03", "2024-01-04"), date(2024, 1, 5))
    assert streaks.current_streak == 0
    assert streaks.longest_streak == 2


def test_gap_in_first_week_of_january():
    completions = _keys("2024-01-01", "2024-01-02", "2024-01-04", "2024-01-05")
    streaks = compute_streaks(Daily(), completions, date(2024, 1, 5))
    assert streaks.current_streak == 2
    assert streaks.longest_streak == 2


def test_longest_streak_found_in_history():
    completions = _keys("2023-12-01", "2023-12-02", "2023-12-03", "2023-12-04", "2024-01-05")
    streaks = compute_streaks(Daily(), completions, date(2024, 1, 5))
    assert streaks.current_streak == 1
    assert streaks.longest_streak == 4


def test_longest_streak_never_below_current():
    today = date(2024, 6, 30)
    for length in (1, 2, 5, 30):
        streaks = compute_streaks(Daily(), _run(today, length), today)
        assert streaks.longest_streak >= streaks.current_streak == length


def test_current_streak_stops_at_scan_limit():
    today = date(2024, 6, 30)
    streaks = compute_streaks(Daily(), _run(today, 400), today)
    assert streaks.current_streak == STREAK_SCAN_LIMIT == 366
    assert streaks.longest_streak == 400


def test_reference_date_may_carry_a_time():
    streaks = compute_streaks(Daily(), _keys("2024-01-04", "2024-01-05"), datetime(2024, 1, 5, 22, 15))
    assert streaks.current_streak == 2


# Weekly habits: longest tolerates gaps up to a week, current still walks every day.

def test_weekly_longest_bridges_gaps_up_to_seven_days():
    completions = _keys("2024-01-01", "2024-01-08", "2024-01-15")
    weekly = compute_streaks(Weekly(frozenset({1})), completions, date(2024, 1, 20))
    daily = compute_streaks(Daily(), completions, date(2024, 1, 20))
    assert weekly.longest_streak == 3
    assert daily.longest_streak == 1


def test_weekly_longest_breaks_on_eight_day_gap():
    completions = _keys("2024-01-01", "2024-01-09")
    streaks = compute_streaks(Weekly(frozenset({1, 2})), completions, date(2024, 1, 20))
    assert streaks.longest_streak == 1


def test_weekly_longest_ignores_selected_weekdays():
    # Tuesday and Thursday completions for a Monday-only habit still chain
    completions = _keys("2024-01-02", "2024-01-04")
    streaks = compute_streaks(Weekly(frozenset({1})), completions, date(2024, 1, 20))
    assert streaks.longest_streak == 2


def test_weekly_current_streak_requires_every_calendar_day():
    completions = _keys("2024-01-01", "2024-01-08")  # two Mondays
    streaks = compute_streaks(Weekly(frozenset({1})), completions, date(2024, 1, 8))
    assert streaks.current_streak == 1
    assert streaks.longest_streak == 2


# ---------- habit_stats ----------

def test_completion_rate_over_days_since_creation(habit_factory):
    habit = habit_factory(
        keys=["2024-01-0%d" % d for d in range(1, 6)],
        created=datetime(2024, 1, 1, 9, 30),
        current_streak=2,
        longest_streak=4,
    )
    stats = habit_stats(habit, date(2024, 1, 11))
    assert stats.total_completions == 5
    assert stats.completion_rate == 50.0
    assert (stats.current_streak, stats.longest_streak) == (2, 4)


def test_completion_rate_rounds_to_one_decimal(habit_factory):
    habit = habit_factory(keys=["2024-01-01"], created=datetime(2024, 1, 1))
    assert habit_stats(habit, date(2024, 1, 4)).completion_rate == 33.3


@pytest.mark.parametrize("today", [date(2024, 1, 1), date(2023, 12, 25)])
def test_completion_rate_zero_without_elapsed_days(habit_factory, today):
    habit = habit_factory(keys=["2024-01-01"], created=datetime(2024, 1, 1, 8, 0))
    assert habit_stats(habit, today).completion_rate == 0.0


def test_stats_to_dict_uses_camel_case(habit_factory):
    stats = habit_stats(habit_factory(), date(2024, 1, 2))
    assert set(stats.to_dict()) == {"totalCompletions", "completionRate", "currentStreak", "longestStreak"}


# ---------- series ----------

@pytest.mark.parametrize("month,year,expected", [(2, 2024, 29), (2, 2023, 28), (4, 2024, 30), (1, 2024, 31)])
def test_monthly_series_has_one_point_per_day(habit_factory, month, year, expected):
    points = monthly_series(habit_factory(), month, year)
    assert len(points) == expected
    assert [p.day for p in points] == list(range(1, expected + 1))
    assert all(p.completed in (0, 1) for p in points)


def test_monthly_series_marks_completed_days(habit_factory):
    habit = habit_factory(keys=["2024-02-01", "2024-02-29", "2024-03-01"])
    points = monthly_series(habit, 2, 2024)
    assert [p.day for p in points if p.completed] == [1, 29]
    assert points[28].date_key == "2024-02-29"
    assert points[0].to_dict() == {"day": 1, "completed": 1, "date": "2024-02-01"}


def test_yearly_series_always_has_twelve_months(habit_factory):
    points = yearly_series(habit_factory(), 2024)
    assert len(points) == 12
    assert [p.month_label for p in points][:3] == ["Jan", "Feb", "Mar"]
    assert all(p.completion_rate == 0 and p.completions == 0 for p in points)


def test_yearly_series_rates_per_month(habit_factory):
    january = ["2024-01-%02d" % d for d in range(1, 32)]
    habit = habit_factory(keys=january + ["2024-04-01", "2024-04-02", "2024-04-03"])
    points = yearly_series(habit, 2024)
    assert points[0].completion_rate == 100.0
    assert points[0].completions == 31
    assert points[3].completion_rate == pytest.approx(10.0)
    assert points[3].to_dict()["month"] == "Apr"


# ---------- is_applicable ----------

def test_daily_habit_always_applicable(habit_factory):
    habit = habit_factory()
    assert all(is_applicable(habit, date(2024, 1, d)) for d in range(1, 8))


def test_weekly_habit_applies_on_selected_weekdays(habit_factory):
    habit = habit_factory(frequency=Weekly(frozenset({1, 3, 5})))
    assert is_applicable(habit, date(2024, 1, 3)) is True  # Wednesday
    assert is_applicable(habit, date(2024, 1, 6)) is False  # Saturday


def test_weekly_habit_without_days_never_applies(habit_factory):
    habit = habit_factory(frequency=Weekly())
    assert not any(is_applicable(habit, date(2024, 1, d)) for d in range(1, 8))
