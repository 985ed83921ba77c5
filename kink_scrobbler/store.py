"""
Persistent key-value state.

- Everything the scrobbler must remember between poll ticks lives here (JSON file),
  so the process can be stopped and resumed without losing the open track.
- Writes are atomic; an unreadable or corrupt file means starting from empty.
- API is minimal: get(), get_many(), set(), update(), remove(), snapshot().
"""

from __future__ import annotations
import json
import logging
import os
import threading
from typing import Any, Dict, Iterable, Mapping

log = logging.getLogger("store")


class StateStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = {}
        self._load()

    # -------- persistence --------
    def _load(self) -> None:
        try:
            folder = os.path.dirname(self.path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            if os.path.isfile(self.path):
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._data = data
        except (OSError, ValueError) as e:
            log.warning("State file %s unreadable (%s); starting empty", self.path, e)
            self._data = {}

    def _save(self) -> None:
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False)
        os.replace(tmp, self.path)

    # -------- public API --------
    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Only keys that are present end up in the result."""
        with self._lock:
            return {k: self._data[k] for k in keys if k in self._data}

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            self._data.update(values)
            self._save()

    def remove(self, *keys: str) -> None:
        with self._lock:
            changed = False
            for k in keys:
                if k in self._data:
                    del self._data[k]
                    changed = True
            if changed:
                self._save()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._data)
