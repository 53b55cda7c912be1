"""Publish-subscribe primitives used between components.

- StateStream: holds a current value and replays it to new subscribers.
- EventStream: one-shot events; each event is delivered once, buffered
  until the first subscriber arrives when buffering is enabled.
- Subscription: handle returned by subscribe(), released with unsubscribe().

Both streams are thread-safe: emitters may run on scheduler worker threads
while subscribers register from an event loop. Callbacks run on the emitting
thread, outside the internal lock.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Deque, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

Callback = Callable[[T], None]


class Subscription:
    """Handle for a registered callback."""

    def __init__(self, release: Callable[[int], None], token: int) -> None:
        self._release = release
        self._token = token
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving values. Safe to call more than once."""
        if self._active:
            self._active = False
            self._release(self._token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class _Broadcaster(Generic[T]):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: Dict[int, Callback] = {}
        self._next_token = 0

    def _add(self, callback: Callback) -> Subscription:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
        return Subscription(self._remove, token)

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    def _snapshot(self) -> List[Callback]:
        with self._lock:
            return list(self._subscribers.values())

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class StateStream(_Broadcaster[T]):
    """Observable value. New subscribers immediately receive the current value.

    Example:
        stream = StateStream(initial=0)
        sub = stream.subscribe(print)   # prints 0
        stream.emit(1)                  # prints 1
        sub.unsubscribe()
    """

    def __init__(self, initial: Optional[T] = None) -> None:
        super().__init__()
        self._value: Optional[T] = initial

    @property
    def value(self) -> Optional[T]:
        with self._lock:
            return self._value

    def emit(self, value: T) -> None:
        with self._lock:
            self._value = value
        for callback in self._snapshot():
            callback(value)

    def subscribe(self, callback: Callback, replay: bool = True) -> Subscription:
        subscription = self._add(callback)
        current = self.value
        if replay and current is not None:
            callback(current)
        return subscription


class EventStream(_Broadcaster[T]):
    """Stream of one-shot events.

    With ``buffer=True`` events emitted while nobody listens are kept and
    handed to the next subscriber, then dropped, so each event is observed
    exactly once.
    """

    def __init__(self, buffer: bool = True) -> None:
        super().__init__()
        self._buffer = buffer
        self._pending: Deque[T] = deque()

    @property
    def pending(self) -> List[T]:
        with self._lock:
            return list(self._pending)

    def emit(self, event: T) -> None:
        with self._lock:
            callbacks = list(self._subscribers.values())
            if not callbacks:
                if self._buffer:
                    self._pending.append(event)
                return
        for callback in callbacks:
            callback(event)

    def subscribe(self, callback: Callback) -> Subscription:
        with self._lock:
            subscription = self._add(callback)
            pending = list(self._pending)
            self._pending.clear()
        for event in pending:
            callback(event)
        return subscription


__all__ = ["Subscription", "StateStream", "EventStream"]
