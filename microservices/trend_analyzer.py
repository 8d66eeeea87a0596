#!/usr/bin/env python3
import json
import sys

import zmq

from config import load_settings
from logger import get_logger, setup_logging
from models import Habit
from stats_engine import monthly_series, yearly_series

log = get_logger("trend_analyzer")


# =========================
# Request / response helpers
# =========================

def make_error_response(message):
    return {
        "status": "error",
        "error": message
    }


def make_success_response(request_type, series):
    return {
        "status": "ok",
        "request_type": request_type,
        "series": series
    }


def serialize_response(response_dict):
    """
    Deterministic JSON encoding:
      - sort_keys=True → stable key order
      - separators=(',', ':') → no extra spaces
    """
    return json.dumps(
        response_dict,
        sort_keys=True,
        separators=(",", ":")
    ).encode("utf-8")


def parse_request_bytes(raw_bytes):
    """
    Decode raw bytes into a Python dict, or return an error response.
    """
    try:
        request = json.loads(raw_bytes.decode("utf-8"))
        return request, None
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None, make_error_response("Invalid JSON in request body.")


def _valid_year(value):
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 9999


def validate_request(request):
    """
    Validate input structure; return (request_type, habit, month, year, error_or_none).
    """
    if not isinstance(request, dict):
        return None, None, None, None, make_error_response("Request must be a JSON object.")

    request_type = request.get("request_type")
    if request_type not in ("monthly", "yearly"):
        return None, None, None, None, make_error_response(
            "Invalid 'request_type'. Expected 'monthly' or 'yearly'."
        )

    raw_habit = request.get("habit")
    if not isinstance(raw_habit, dict):
        return None, None, None, None, make_error_response(
            "'habit' must be an object."
        )

    year = request.get("year")
    if not _valid_year(year):
        return None, None, None, None, make_error_response(
            "'year' must be an integer between 1 and 9999."
        )

    month = request.get("month")
    if request_type == "monthly":
        if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
            return None, None, None, None, make_error_response(
                "'month' must be an integer between 1 and 12."
            )

    try:
        habit = Habit.from_dict(raw_habit)
    except (KeyError, TypeError, ValueError) as exc:
        return None, None, None, None, make_error_response(f"Invalid 'habit': {exc}")

    return request_type, habit, month, year, None


def process_request(request):
    """Dict in, dict out. Use this for unit tests."""
    request_type, habit, month, year, validation_error = validate_request(request)
    if validation_error is not None:
        return validation_error

    if request_type == "monthly":
        points = monthly_series(habit, month, year)
    else:
        points = yearly_series(habit, year)
    return make_success_response(request_type, [p.to_dict() for p in points])


def handle_message(raw_bytes):
    """
    Pure handler: bytes in → bytes out.
    """
    request, parse_error = parse_request_bytes(raw_bytes)
    if parse_error is not None:
        return serialize_response(parse_error)
    return serialize_response(process_request(request))


# =========================
# ZeroMQ server & quit logic
# =========================

def create_socket(port):
    context = zmq.Context()
    socket = context.socket(zmq.REP)
    socket.bind(f"tcp://*:{port}")
    return context, socket


def is_quit_signal(raw_request: bytes) -> bool:
    """
    Accept a broader set of quit signals:
    - raw b"q"
    - UTF-8 string "q"
    - JSON string "q" (i.e., b'"q"')
    """
    trimmed = raw_request.strip().lower()
    if trimmed == b"q":
        return True

    try:
        text = trimmed.decode("utf-8")
    except UnicodeDecodeError:
        return False

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        return False

    return isinstance(decoded, str) and decoded.strip().lower() == "q"


def run_server(port="5560"):
    """
    Main server loop.

    - Normal request: JSON → handled by handle_message().
    - Quit request: raw message 'q' (case-insensitive) → respond once, then exit.
    """
    context, socket = create_socket(port)
    print(f"[trend-analyzer] Listening on port {port}...", file=sys.stderr)
    print("  Send 'q' from a client or press Ctrl+C to quit.", file=sys.stderr)

    try:
        while True:
            raw_request = socket.recv()

            if is_quit_signal(raw_request):
                quit_response = {
                    "status": "ok",
                    "message": "Trend analyzer shutting down."
                }
                socket.send(serialize_response(quit_response))
                print("[trend-analyzer] Received quit signal 'q'. Exiting.",
                      file=sys.stderr)
                break

            try:
                response_bytes = handle_message(raw_request)
            except Exception as e:
                log.exception("Unhandled error while building series")
                error_response = make_error_response(f"Internal error: {str(e)}")
                response_bytes = serialize_response(error_response)

            socket.send(response_bytes)

    except KeyboardInterrupt:
        print("\n[trend-analyzer] Interrupted via keyboard.", file=sys.stderr)
    finally:
        socket.close()
        context.term()


def main():
    settings = load_settings()
    setup_logging(settings.log_dir, settings.log_level_value)
    run_server(str(settings.trend_port))


if __name__ == "__main__":
    main()
