import sys
from datetime import date, datetime
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from models import Daily, Habit  # noqa: E402


def make_habit(keys=(), frequency=None, created=datetime(2024, 1, 1, 9, 30), **kwargs) -> Habit:
    return Habit(
        id=kwargs.pop("id", "h1"),
        name=kwargs.pop("name", "Read"),
        frequency=frequency if frequency is not None else Daily(),
        completions={k: True for k in keys},
        created_at=created,
        **kwargs,
    )


@pytest.fixture
def habit_factory():
    return make_habit


@pytest.fixture
def today():
    return date(2024, 1, 5)
