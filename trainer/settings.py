"""
Persisted connection settings (API key, model, endpoint).

The store keeps a small key-value mapping in a backend:
- MemorySettingsBackend: process-local dict, used by tests
- JsonFileSettingsBackend: one JSON document in the user's home directory

Absent keys load as defaults rather than errors, and no schema version is
stored. Values are plain strings; the API key is never validated here, a
blank key is only rejected when the learner submits an answer.
"""

import json
import os
import tempfile
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Optional, Protocol

from .logger import logger, mask_secret
from .models import Settings

SETTINGS_KEYS = ("api_key", "model", "endpoint")

DEFAULT_SETTINGS_PATH = Path.home() / ".rephrase_trainer" / "settings.json"


class SettingsBackend(Protocol):
    def load(self) -> Dict[str, str]:
        ...

    def save(self, values: Dict[str, str]) -> None:
        ...


class MemorySettingsBackend:
    """Keeps settings in memory only; starts from ``initial`` if given."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self.save_count = 0

    def load(self) -> Dict[str, str]:
        return dict(self._values)

    def save(self, values: Dict[str, str]) -> None:
        self._values = dict(values)
        self.save_count += 1


class JsonFileSettingsBackend:
    """
    Stores settings as a JSON object in ``path``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves half a pair on disk.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SETTINGS_PATH

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            logger.env(f"No settings file at {self.path}, using defaults")
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read settings file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {self.path}: not a JSON object")
            return {}
        return {key: value for key, value in data.items() if isinstance(value, str)}

    def save(self, values: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".settings-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(values, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.env_success(f"Settings written to {self.path}")


class SettingsStore:
    """Loads settings once and serves them to the sessions."""

    def __init__(self, backend: Optional[SettingsBackend] = None):
        self.backend = backend if backend is not None else MemorySettingsBackend()
        self._lock = threading.Lock()
        self._settings = self._from_values(self.backend.load())
        logger.env(
            f"Settings loaded: model={self._settings.model}, "
            f"key={mask_secret(self._settings.api_key)}, endpoint={self._settings.endpoint}"
        )

    @staticmethod
    def _from_values(values: Dict[str, str]) -> Settings:
        defaults = Settings()
        return Settings(
            api_key=values.get("api_key", defaults.api_key),
            model=values.get("model") or defaults.model,
            endpoint=values.get("endpoint") or defaults.endpoint,
        )

    def get(self) -> Settings:
        with self._lock:
            return self._settings

    def save(self, api_key: str, model: str, endpoint: Optional[str] = None) -> Settings:
        """Persist key and model together (endpoint too when given)."""
        with self._lock:
            updated = Settings(
                api_key=api_key,
                model=model,
                endpoint=endpoint if endpoint is not None else self._settings.endpoint,
            )
            self.backend.save({key: value for key, value in asdict(updated).items() if key in SETTINGS_KEYS})
            self._settings = updated
        logger.env_success(f"Settings saved: model={model}, key={mask_secret(api_key)}")
        return updated
