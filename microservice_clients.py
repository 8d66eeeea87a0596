"""Helpers to call the ZeroMQ stats microservices."""

from __future__ import annotations

import json
from datetime import date
from typing import List, Optional

import zmq

from config import Settings, load_settings
from dates import date_key
from logger import get_logger
from models import Habit, User, frequency_to_dict

log = get_logger("clients")

_CONTEXT = zmq.Context.instance()


# ---------- Low-level send helpers ----------
def _make_socket(port: int, settings: Settings):
    socket = _CONTEXT.socket(zmq.REQ)
    socket.setsockopt(zmq.RCVTIMEO, settings.timeout_ms)
    socket.setsockopt(zmq.SNDTIMEO, settings.timeout_ms)
    socket.setsockopt(zmq.LINGER, 0)
    socket.connect(f"tcp://{settings.service_host}:{port}")
    return socket


def _send_json(port: int, payload: dict, settings: Settings):
    socket = _make_socket(port, settings)
    try:
        socket.send_json(payload)
        return socket.recv_json(), None
    except zmq.error.Again:
        return None, f"Timed out contacting service on port {port}."
    except zmq.ZMQError as exc:
        log.warning("Service error on port %s: %s", port, exc)
        return None, f"Service error on port {port}: {exc}"
    finally:
        socket.close()


def _send_bytes(port: int, payload: dict, settings: Settings):
    socket = _make_socket(port, settings)
    try:
        socket.send_string(json.dumps(payload))
        raw = socket.recv()
        return json.loads(raw.decode("utf-8")), None
    except zmq.error.Again:
        return None, f"Timed out contacting service on port {port}."
    except (zmq.ZMQError, ValueError) as exc:
        log.warning("Service error on port %s: %s", port, exc)
        return None, f"Service error on port {port}: {exc}"
    finally:
        socket.close()


# ---------- Streaks service ----------
def _streaks_call(payload: dict, settings: Optional[Settings]):
    settings = settings or load_settings()
    response, error = _send_json(settings.streaks_port, payload, settings)
    if error:
        return None, error
    if not response.get("ok"):
        return None, response.get("error", "Unknown streaks error.")
    return response.get("result", {}), None


def streaks_for_habit(habit: Habit, reference: date, settings: Optional[Settings] = None):
    """Ask the streaks service for current/longest streak of a habit."""
    payload = {
        "type": "streaks",
        "dates": sorted(habit.completions),
        "referenceDate": date_key(reference),
    }
    payload.update(frequency_to_dict(habit.frequency))
    return _streaks_call(payload, settings)


def toggle_remote(date_strings: List[str], day: date, settings: Optional[Settings] = None):
    payload = {"type": "toggle", "dates": date_strings, "date": date_key(day)}
    return _streaks_call(payload, settings)


def stats_for_habit(habit: Habit, today: date, settings: Optional[Settings] = None):
    payload = {"type": "stats", "habit": habit.to_dict(), "today": date_key(today)}
    return _streaks_call(payload, settings)


# ---------- Trend analyzer ----------
def _trend_call(payload: dict, settings: Optional[Settings]):
    settings = settings or load_settings()
    response, error = _send_bytes(settings.trend_port, payload, settings)
    if error:
        return None, error
    if response.get("status") != "ok":
        return None, response.get("error", "Unknown trend analyzer error.")
    return response.get("series", []), None


def monthly_overview(habit: Habit, month: int, year: int, settings: Optional[Settings] = None):
    payload = {
        "request_type": "monthly",
        "habit": habit.to_dict(),
        "month": month,
        "year": year,
    }
    return _trend_call(payload, settings)


def yearly_overview(habit: Habit, year: int, settings: Optional[Settings] = None):
    payload = {"request_type": "yearly", "habit": habit.to_dict(), "year": year}
    return _trend_call(payload, settings)


# ---------- Public aggregation ----------
def gather_stats_snapshot(user: User, today: date, settings: Optional[Settings] = None):
    """
    Collects the analytics for every habit of a user in one pass.
    Returns {"habits": [{"habit", "streaks", "stats", "monthly", "yearly", "errors"}]}.
    """
    settings = settings or load_settings()
    snapshot = {"habits": []}

    for habit in user.habits:
        entry = {"habit": habit, "errors": []}
        calls = {
            "streaks": lambda h=habit: streaks_for_habit(h, today, settings),
            "stats": lambda h=habit: stats_for_habit(h, today, settings),
            "monthly": lambda h=habit: monthly_overview(h, today.month, today.year, settings),
            "yearly": lambda h=habit: yearly_overview(h, today.year, settings),
        }
        for name, call in calls.items():
            result, error = call()
            entry[name] = result
            if error:
                entry["errors"].append(f"{name}: {error}")
        snapshot["habits"].append(entry)

    return snapshot
