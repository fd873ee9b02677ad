"""Key/value persistence for user settings"""
import json
import logging
import os
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Durable string storage addressed by key"""

    def load(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key was never saved"""
        ...

    def save(self, key: str, value: str) -> None:
        """Durably store value under key"""
        ...


class JSONFileSettingsStore:
    """
    Settings store backed by one JSON file holding every key.

    Writes go to a temp file that replaces the original, so an interrupted
    write never leaves a truncated document behind.
    """

    def __init__(self, filepath: str = "dashboard_settings.json"):
        self.filepath = filepath

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.filepath):
            return {}

        with open(self.filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Settings file {self.filepath} does not hold a JSON object")
        return data

    def load(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def save(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except (OSError, ValueError) as e:
            logger.warning(f"Overwriting unreadable settings file {self.filepath}: {e}")
            data = {}
        data[key] = value

        tmp_path = self.filepath + ".tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.filepath)


class MemorySettingsStore:
    """In-process settings store"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def save(self, key: str, value: str) -> None:
        self.values[key] = value
