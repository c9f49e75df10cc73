"""
Sliding-window rate estimation over cumulative counters.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterator

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 10_000


@dataclass(frozen=True)
class HistoryEntry:
    """One observation of a cumulative counter."""

    timestamp: float
    fetched_bytes: float


class RateWindow:
    """
    Per-key history of cumulative byte counters.

    The rate of a key is the slope between the oldest and the newest sample
    still inside the window, which smooths out poll jitter without keeping
    history forever.
    """

    def __init__(self, window_ms: float = DEFAULT_WINDOW_MS) -> None:
        self.window_ms = window_ms
        self._history: Dict[str, Deque[HistoryEntry]] = {}

    def record(self, key: str, timestamp: float, cumulative_bytes: float) -> None:
        """
        Append an observation for key and evict samples older than the window.

        Args:
            key: Peer address or any other stable identifier
            timestamp: Observation time in milliseconds
            cumulative_bytes: Counter value at that time
        """
        if isinstance(cumulative_bytes, bool) or not isinstance(cumulative_bytes, (int, float)):
            logger.debug(f"Ignoring non-numeric counter for {key}: {cumulative_bytes!r}")
            return
        if not math.isfinite(cumulative_bytes):
            logger.debug(f"Ignoring non-finite counter for {key}")
            return

        history = self._history.get(key)
        if history is None:
            history = deque()
            self._history[key] = history
        elif history and timestamp <= history[-1].timestamp:
            # Samples must stay strictly ordered by time.
            logger.debug(f"Ignoring out-of-order sample for {key} at {timestamp}")
            return

        history.append(HistoryEntry(timestamp=timestamp, fetched_bytes=cumulative_bytes))

        while history and timestamp - history[0].timestamp > self.window_ms:
            history.popleft()

    def rate(self, key: str) -> float:
        """Bytes per second for key, or 0 with fewer than two samples."""
        history = self._history.get(key)
        if not history or len(history) < 2:
            return 0.0

        first = history[0]
        last = history[-1]
        elapsed = (last.timestamp - first.timestamp) / 1000
        if elapsed == 0:
            return 0.0
        # Counter resets give negative rates; they are reported as is.
        return (last.fetched_bytes - first.fetched_bytes) / elapsed

    def forget(self, key: str) -> None:
        """Drop all history for key."""
        self._history.pop(key, None)

    def retain(self, keys: set[str] | frozenset[str]) -> list[str]:
        """
        Forget every key not in keys.

        Returns:
            The keys that were dropped
        """
        stale = [key for key in self._history if key not in keys]
        for key in stale:
            self.forget(key)
        return stale

    def history(self, key: str) -> tuple[HistoryEntry, ...]:
        return tuple(self._history.get(key, ()))

    def clear(self) -> None:
        self._history.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._history

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._history))

    def __len__(self) -> int:
        return len(self._history)
