"""
Position cache for template matches.

Maps a template label to the rectangle it was last confidently found at and a
hue/saturation histogram snapshot of that rectangle. Entries are only valid
while the on-screen element stays put; the template matcher owns the
re-verification policy.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional
import logging
import threading

import numpy as np

if TYPE_CHECKING:
    from ..vision.geometry import Rect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    rect: Rect
    histogram: np.ndarray


class PositionCache:
    """Thread-safe label -> CacheEntry map with an enable switch."""

    def __init__(self, enabled: bool = False) -> None:
        self.lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._enabled = bool(enabled)

    @property
    def enabled(self) -> bool:
        with self.lock:
            return self._enabled

    def enable(self, value: bool) -> None:
        """Turn caching on or off. Turning it off drops every entry."""
        with self.lock:
            self._enabled = bool(value)
            if not self._enabled:
                self._entries.clear()
        logger.debug("position cache %s", "enabled" if value else "disabled (cleared)")

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()

    def get(self, label: str) -> Optional[CacheEntry]:
        with self.lock:
            return self._entries.get(label)

    def put(self, label: str, rect: Rect, histogram: np.ndarray) -> bool:
        """Store an entry; ignored (returns False) while caching is disabled."""
        with self.lock:
            if not self._enabled:
                return False
            self._entries[label] = CacheEntry(rect, histogram)
            return True

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def __contains__(self, label: object) -> bool:
        with self.lock:
            return label in self._entries
