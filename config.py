"""
Runtime settings.

Defaults live on the Settings dataclass. An optional YAML file overrides
them, and environment variables override the file:

    from config import load_settings
    settings = load_settings()
    port = settings.streaks_port
"""
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("config") / "settings.yaml"

# env var -> Settings field
ENV_OVERRIDES = {
    "MOMENTUM_DATA_PATH": "data_path",
    "MOMENTUM_STORAGE_KEY": "storage_key",
    "MOMENTUM_LOG_DIR": "log_dir",
    "MOMENTUM_LOG_LEVEL": "log_level",
    "STREAKS_PORT": "streaks_port",
    "TREND_PORT": "trend_port",
    "MOMENTUM_SERVICE_HOST": "service_host",
    "MOMENTUM_TIMEOUT_MS": "timeout_ms",
}


@dataclass
class Settings:
    # persisted blob (JSON file) and the key the blob is stored under
    data_path: str = "data/momentum.json"
    storage_key: str = "habitTracker_v2"

    log_dir: str = "logs"
    log_level: str = "INFO"

    service_host: str = "localhost"
    streaks_port: int = 5555
    trend_port: int = 5560
    timeout_ms: int = 1500

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)


def _coerce(name: str, raw, source: str):
    target = next(f for f in fields(Settings) if f.name == name)
    if target.type in (int, "int"):
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ConfigError(f"'{name}' must be an integer, got {raw!r}", source)
    return str(raw)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}", str(path))
    if not isinstance(loaded, dict):
        raise ConfigError("Settings file must contain a mapping", str(path))
    return loaded


def load_settings(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    env = os.environ if env is None else env
    if path is None:
        path = Path(env.get("MOMENTUM_CONFIG", DEFAULT_CONFIG_PATH))

    known = {f.name for f in fields(Settings)}
    values = {}

    if path.exists():
        for name, raw in _read_yaml(path).items():
            if name not in known:
                raise ConfigError(f"Unknown setting '{name}'", str(path))
            values[name] = _coerce(name, raw, str(path))

    for var, name in ENV_OVERRIDES.items():
        if var in env:
            values[name] = _coerce(name, env[var], var)

    return Settings(**values)
