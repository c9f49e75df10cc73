"""
Observable value cell shared between pollers and the UI.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]
Unsubscribe = Callable[[], None]


class Store(Generic[T]):
    """
    Single-writer, many-reader reactive cell.

    The value is always replaced as a whole: producers call ``set`` (or
    ``update`` for read-copy-merge), readers call ``get`` or subscribe to be
    told about every new value.
    """

    def __init__(self, initial: T, name: str = "store") -> None:
        self.name = name
        self._value = initial
        self._subscribers: dict[int, Subscriber[T]] = {}
        self._ids = itertools.count()

    def get(self) -> T:
        """Return the current value."""
        return self._value

    def set(self, value: T) -> None:
        """
        Replace the value and notify subscribers synchronously.

        Subscribers are called in subscription order. The subscriber list is
        snapshotted first, so a callback registered during notification waits
        for the next ``set``; a callback removed during notification is skipped.
        """
        self._value = value
        for token, callback in list(self._subscribers.items()):
            if token not in self._subscribers:
                continue
            try:
                callback(value)
            except Exception:
                logger.exception(f"Subscriber of {self.name} failed")

    def update(self, fn: Callable[[T], T]) -> T:
        """Compute the next value from the current one and ``set`` it."""
        value = fn(self._value)
        self.set(value)
        return value

    def subscribe(self, callback: Subscriber[T]) -> Unsubscribe:
        """
        Register a callback for future values.

        Returns:
            A function removing the callback; calling it again does nothing.
        """
        token = next(self._ids)
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        return f"Store({self.name!r}, {self._value!r})"
