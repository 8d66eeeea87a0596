"""Microservice answering streak, toggle and summary requests for one habit."""

from datetime import datetime
import json
import sys
import threading
import zmq

from config import load_settings
from dates import date_key
from logger import get_logger, setup_logging
from models import Habit, frequency_from_dict
from stats_engine import compute_streaks, habit_stats, toggle_completion

log = get_logger("streaks_service")

# accepted on the wire, always answered as YYYY-MM-DD
DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d-%b-%Y",
    "%b %d %Y",
]


def parse_date_string(raw: str):
    """Try multiple formats; return date or None if all fail."""
    raw = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _error(message):
    return {"ok": False, "error": message}


def _ok(result):
    return {"ok": True, "result": result}


def _parse_one(payload, field):
    raw = payload.get(field)
    if not isinstance(raw, str):
        return None, f"'{field}' must be a date string."
    parsed = parse_date_string(raw)
    if parsed is None:
        return None, f"'{field}' is not a valid date: {raw!r}"
    return parsed, None


def _completions_from(payload):
    """Turn the 'dates' array into a completion map or return an error message."""
    if not isinstance(payload.get("dates"), list):
        return None, "Request must contain a 'dates' array."
    completions = {}
    for raw in payload["dates"]:
        parsed = parse_date_string(raw) if isinstance(raw, str) else None
        if parsed is None:
            return None, f"Invalid date in 'dates': {raw!r}"
        completions[date_key(parsed)] = True
    return completions, None


def handle_streaks(payload):
    completions, error = _completions_from(payload)
    if error:
        return _error(error)
    reference, error = _parse_one(payload, "referenceDate")
    if error:
        return _error(error)
    frequency = frequency_from_dict(payload)
    return _ok(compute_streaks(frequency, completions, reference).to_dict())


def handle_toggle(payload):
    completions, error = _completions_from(payload)
    if error:
        return _error(error)
    day, error = _parse_one(payload, "date")
    if error:
        return _error(error)
    toggled = toggle_completion(completions, day)
    return _ok({"dates": sorted(toggled)})


def handle_stats(payload):
    if not isinstance(payload.get("habit"), dict):
        return _error("Request must contain a 'habit' object.")
    today, error = _parse_one(payload, "today")
    if error:
        return _error(error)
    habit = Habit.from_dict(payload["habit"])
    return _ok(habit_stats(habit, today).to_dict())


HANDLERS = {
    "streaks": handle_streaks,
    "toggle": handle_toggle,
    "stats": handle_stats,
}


def process_request(payload: dict) -> dict:
    """
    payload: dict with "type" in HANDLERS (defaults to "streaks")
    returns dict with ok/result or ok/error
    """
    if not isinstance(payload, dict):
        return _error("Request must be a JSON object.")
    handler = HANDLERS.get(payload.get("type", "streaks"))
    if handler is None:
        return _error(f"Unsupported request type. Expected one of: {', '.join(HANDLERS)}.")
    try:
        return handler(payload)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        log.warning("Rejected %s request: %s", payload.get("type", "streaks"), exc)
        return _error(f"Malformed request: {exc}")


def decode_request(raw_bytes):
    """Bytes to payload, or (None, message) when the body is not JSON."""
    try:
        return json.loads(raw_bytes.decode("utf-8")), None
    except (UnicodeDecodeError, json.JSONDecodeError):
        log.warning("Rejected request body that is not JSON")
        return None, "Invalid JSON in request body."


def is_quit_signal(payload) -> bool:
    return isinstance(payload, str) and payload.strip().lower() == "q"


def shutdown_listener(stop_flag):
    """
    Waits for the user to type 'q' then Enter to request shutdown.
    Sets stop_flag[0] = True so the main loop can exit cleanly.
    """
    print("Press 'q' then Enter to stop the microservice...", file=sys.stderr)
    for line in sys.stdin:
        if line.strip().lower() == "q":
            stop_flag[0] = True
            print("Shutdown requested...", file=sys.stderr)
            break


def start_shutdown_listener(stop_flag):
    listener_thread = threading.Thread(
        target=shutdown_listener,
        args=(stop_flag,),
        daemon=True
    )
    listener_thread.start()
    return listener_thread


def serve_requests(socket, stop_flag):
    """Process inbound requests until stop_flag is set or a client sends 'q'."""
    while not stop_flag[0]:
        if socket.poll(timeout=1000):
            payload, error = decode_request(socket.recv())
            if error:
                socket.send_json(_error(error))
                continue
            if is_quit_signal(payload):
                socket.send_json(_ok({"message": "Streaks service shutting down."}))
                stop_flag[0] = True
                break
            socket.send_json(process_request(payload))


def build_server_socket(port):
    """Create and bind the REP socket for the service."""
    context = zmq.Context()
    socket = context.socket(zmq.REP)
    address = f"tcp://*:{port}"
    socket.bind(address)
    return context, socket, address


def shutdown(context, socket):
    print("Shutting down microservice...", file=sys.stderr)
    socket.close()
    context.term()


def run_service(port):
    """Start the microservice lifecycle for the given port."""
    context, socket, address = build_server_socket(port)
    print(f"Streaks microservice listening on {address}", file=sys.stderr)
    stop_flag = [False]
    start_shutdown_listener(stop_flag)
    try:
        serve_requests(socket, stop_flag)
    except zmq.ZMQError as exc:
        log.error("Error in streaks microservice: %s", exc)
    finally:
        shutdown(context, socket)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    settings = load_settings()
    setup_logging(settings.log_dir, settings.log_level_value)
    port = settings.streaks_port
    if argv:
        try:
            port = int(argv[0])
        except ValueError:
            print(f"Invalid port '{argv[0]}', using {port} instead.", file=sys.stderr)
    run_service(port)


if __name__ == "__main__":
    main()
