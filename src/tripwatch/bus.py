"""In-process publish/subscribe for snapshots and alert events."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]
Unsubscribe = Callable[[], None]


class SubscriptionBus(Generic[T]):
    """Synchronous, best-effort fan-out.

    Parameters
    ----------
    name : str
        Used in log messages only.
    current : callable or None
        When given, every new subscriber is called once with ``current()``
        at registration time, before ``subscribe`` returns.

    Each publish iterates over a copy of the registry, so subscribers may
    unsubscribe themselves (or others) from inside a callback. A raising
    subscriber is logged and skipped.
    """

    def __init__(self, name: str, *, current: Callable[[], T] | None = None) -> None:
        self._name = name
        self._current = current
        self._subscribers: dict[int, Subscriber[T]] = {}
        self._ids = itertools.count()

    def subscribe(self, callback: Subscriber[T]) -> Unsubscribe:
        token = next(self._ids)
        self._subscribers[token] = callback
        if self._current is not None:
            self._deliver(callback, self._current())

        def _unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return _unsubscribe

    def publish(self, value: T) -> None:
        for callback in tuple(self._subscribers.values()):
            self._deliver(callback, value)

    def _deliver(self, callback: Subscriber[T], value: T) -> None:
        try:
            callback(value)
        except Exception:
            _logger.exception("%s subscriber %r raised", self._name, callback)

    def clear(self) -> None:
        self._subscribers.clear()

    def __len__(self) -> int:
        return len(self._subscribers)
