# repo_json.py
import copy
import json
import os
from typing import Dict, Optional, Protocol

from logger import get_logger

log = get_logger("repo")


def fresh_blob() -> dict:
    return {"users": [], "currentUser": None, "theme": "dark"}


class Store(Protocol):
    """Anything that can load and save the single app-data blob."""

    def load(self) -> dict: ...

    def save(self, blob: dict) -> bool: ...


class JSONRepo:
    """
    File-backed store. The file holds a JSON object keyed by storage key so
    several blobs (e.g. an old and a new format) can share one file.
    """

    def __init__(self, path: str, key: str = "habitTracker_v2"):
        self.path = path
        self.key = key
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def _read(self) -> Dict[str, dict]:
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, obj):
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(obj, f, indent=2)
        os.replace(tmp, self.path)

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return fresh_blob()
        try:
            stored = self._read()
        except (OSError, json.JSONDecodeError) as exc:
            log.warning("Could not read %s (%s); starting with fresh data", self.path, exc)
            return fresh_blob()
        blob = stored.get(self.key) if isinstance(stored, dict) else None
        if not isinstance(blob, dict):
            return fresh_blob()
        return blob

    def save(self, blob: dict) -> bool:
        try:
            stored = self._read() if os.path.exists(self.path) else {}
            if not isinstance(stored, dict):
                stored = {}
        except (OSError, json.JSONDecodeError):
            stored = {}
        stored[self.key] = blob
        try:
            self._write(stored)
        except (OSError, TypeError, ValueError) as exc:
            log.error("Save error for %s: %s", self.path, exc)
            return False
        return True


class MemoryStore:
    """In-process store; keeps deep copies so callers cannot alias it."""

    def __init__(self, blob: Optional[dict] = None):
        self.blob = copy.deepcopy(blob) if blob is not None else None
        self.saves = 0

    def load(self) -> dict:
        if self.blob is None:
            return fresh_blob()
        return copy.deepcopy(self.blob)

    def save(self, blob: dict) -> bool:
        self.blob = copy.deepcopy(blob)
        self.saves += 1
        return True
