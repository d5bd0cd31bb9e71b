#!/usr/bin/env python3
"""DIRAC — config.py"""

import json
import logging
import os
from pathlib import Path
from datetime import datetime
from typing import Any

log = logging.getLogger(__name__)

CONFIG_DIR  = Path(os.environ.get("DIRAC_HOME") or Path.home() / ".dirac")
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_MODEL   = "qwen2.5:3b"
DEFAULT_API_URL = "http://localhost:11434/api/generate"

DEFAULT_CONFIG: dict[str, Any] = {
    "version": "0.1.0",
    "created_at": "",
    "model": DEFAULT_MODEL,
    "api_url": DEFAULT_API_URL,
    "request_timeout": 120,
    "shell": "",
    "history_file": "history",
    "splash_on_start": True,
    "max_listing_entries": 200,
    "log_level": "WARNING",
}

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_RULES: dict[str, tuple] = {
    "request_timeout":     (int, 1, 3600, None),
    "max_listing_entries": (int, 0, 5000, None),
    "log_level":           (str, None, None, _LOG_LEVELS),
}

_BOOL_KEYS = {"splash_on_start"}


class DiracConfig:
    def __init__(self, config_dir: Path = None):
        self._dir  = Path(config_dir) if config_dir else CONFIG_DIR
        self._file = self._dir / "config.json"
        self._data: dict[str, Any] = {}
        self._load()

    def _ensure_dir(self):
        self._dir.mkdir(parents=True, exist_ok=True)

    def _load(self):
        if self._file.exists():
            try:
                saved = json.loads(self._file.read_text("utf-8"))
                self._data = {**DEFAULT_CONFIG, **saved}
                return
            except (OSError, ValueError) as exc:
                log.warning("ignoring unreadable config %s: %s", self._file, exc)
        self._data = DEFAULT_CONFIG.copy()
        self._data["created_at"] = datetime.now().isoformat()
        self._save()

    def _save(self):
        self._data["_updated_at"] = datetime.now().isoformat()
        try:
            self._ensure_dir()
            self._file.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False), "utf-8"
            )
        except OSError as exc:
            log.warning("could not write config %s: %s", self._file, exc)

    def _validate(self, key: str, value: Any) -> Any:
        if key in _BOOL_KEYS:
            if isinstance(value, str):
                return value.lower() in ("true", "1", "yes", "on")
            return bool(value)
        if key not in _RULES:
            return value
        typ, vmin, vmax, allowed = _RULES[key]
        try:
            value = typ(value)
        except (TypeError, ValueError):
            raise ValueError(f"'{key}' must be {typ.__name__}")
        if key == "log_level":
            value = value.upper()
        if vmin is not None and value < vmin: raise ValueError(f"'{key}' >= {vmin}")
        if vmax is not None and value > vmax: raise ValueError(f"'{key}' <= {vmax}")
        if allowed and value not in allowed:
            raise ValueError(f"'{key}' must be: {', '.join(str(a) for a in allowed)}")
        return value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if key not in DEFAULT_CONFIG or key in ("version", "created_at"):
            raise ValueError(f"Unknown config key: '{key}'")
        value = self._validate(key, value)
        self._data[key] = value
        self._save()

    def all(self) -> dict:
        return {k: v for k, v in self._data.items() if not k.startswith("_")}

    def reset(self) -> None:
        self._data = DEFAULT_CONFIG.copy()
        self._data["created_at"] = datetime.now().isoformat()
        self._save()

    def model(self) -> str:
        return self._data.get("model") or DEFAULT_MODEL

    def shell(self) -> str:
        return self._data.get("shell") or os.environ.get("SHELL") or "/bin/sh"

    def home(self) -> Path:
        return self._dir

    def path(self) -> Path:
        return self._file

    def history_path(self) -> Path:
        p = Path(os.path.expanduser(self._data.get("history_file") or "history"))
        return p if p.is_absolute() else self._dir / p


cfg = DiracConfig()
