"""
Deciding whether a scraped label is a real track change.

The player page sometimes shows a label it already showed a few minutes ago.
Without a guard that would reopen (and later re-scrobble) the old track, so
labels that were recently closed and scrobbled are ignored for a while.
"""

from __future__ import annotations
from collections import deque
from typing import Deque, Iterable, Optional

from .config import DEFAULT_PLACEHOLDERS

HISTORY_KEY = "history"


def is_default(sample: Optional[str], placeholders: Iterable[str] = DEFAULT_PLACEHOLDERS) -> bool:
    """True for 'nothing identifiable is playing'."""
    if sample is None or not sample.strip():
        return True
    return sample in placeholders


def should_treat_as_new(sample: Optional[str], previous: Optional[str],
                        history: "RecentHistory",
                        placeholders: Iterable[str] = DEFAULT_PLACEHOLDERS) -> bool:
    if sample == previous:
        return False
    # Silence still ends the current track, but never opens one.
    if is_default(sample, placeholders):
        return True
    return sample not in history


class RecentHistory:
    """Fixed-size FIFO of labels that were closed and scrobbled.

    Pre-filled with None, which no real label ever equals.
    """

    def __init__(self, size: int = 5, items: Iterable[Optional[str]] = ()):
        self.size = size
        self._items: Deque[Optional[str]] = deque([None] * size, maxlen=size)
        for item in list(items)[-size:]:
            self._items.append(item)

    def push(self, label: str) -> None:
        self._items.append(label)   # maxlen drops the oldest

    def __contains__(self, label: object) -> bool:
        if label is None:
            return False
        return label in self._items

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> list[Optional[str]]:
        return list(self._items)

    @classmethod
    def load(cls, store, size: int = 5) -> "RecentHistory":
        items = store.get(HISTORY_KEY)
        return cls(size, items if isinstance(items, list) else ())

    def save(self, store) -> None:
        store.set(HISTORY_KEY, self.to_list())
