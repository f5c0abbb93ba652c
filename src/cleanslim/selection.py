"""Persisted category selection for cleanslim."""

import threading
from pathlib import Path
from typing import Optional, Protocol

from cleanslim.config import load_config_data, save_config_data

SELECTION_KEY = "selection"


class SelectionStore(Protocol):
    """Key-value store remembering which categories are selected."""

    def get(self, name: str) -> Optional[bool]:
        ...

    def set(self, name: str, selected: bool) -> None:
        ...


class MemorySelectionStore:
    """In-memory selection store."""

    def __init__(self, initial: Optional[dict[str, bool]] = None):
        self._values: dict[str, bool] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[bool]:
        with self._lock:
            return self._values.get(name)

    def set(self, name: str, selected: bool) -> None:
        with self._lock:
            self._values[name] = bool(selected)

    def snapshot(self) -> dict[str, bool]:
        with self._lock:
            return dict(self._values)


class JsonSelectionStore:
    """
    Selection store backed by the configuration file.

    The mapping is read once when the store is created and the whole file is
    rewritten on every change, keeping other configuration keys intact.
    """

    def __init__(self, config_file: Path | None = None):
        self.config_file = config_file
        self._lock = threading.Lock()
        data = load_config_data(config_file)
        raw = data.get(SELECTION_KEY, {})
        self._values: dict[str, bool] = {
            k: v for k, v in raw.items() if isinstance(v, bool)
        } if isinstance(raw, dict) else {}

    def get(self, name: str) -> Optional[bool]:
        with self._lock:
            return self._values.get(name)

    def set(self, name: str, selected: bool) -> None:
        with self._lock:
            self._values[name] = bool(selected)
            data = load_config_data(self.config_file)
            data[SELECTION_KEY] = dict(self._values)
            save_config_data(data, self.config_file)

    def snapshot(self) -> dict[str, bool]:
        with self._lock:
            return dict(self._values)
