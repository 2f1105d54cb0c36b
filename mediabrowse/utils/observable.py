"""
Observable state primitives.
- LiveValue: current-value cell plus observer registry; late observers get
  the latest value immediately.
- Event: single-consumption wrapper for one-shot UI events (navigation).
"""
import asyncio
import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Observer = Callable[[T], None]

_UNSET = object()


class LiveValue(Generic[T]):
    """
    Holds the latest value of one piece of state and notifies observers.

    `set_value` notifies synchronously and must be called on the delivery
    context (the owning event loop). `post_value` is safe from any thread:
    every posted value is delivered, in order, on the loop.
    """

    def __init__(
        self,
        initial: object = _UNSET,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._value = initial
        self._observers: list[Observer] = []
        self._lock = threading.Lock()
        self._loop = loop

    @property
    def value(self) -> Optional[T]:
        return None if self._value is _UNSET else self._value  # type: ignore[return-value]

    @property
    def has_value(self) -> bool:
        return self._value is not _UNSET

    def observe(self, observer: Observer) -> None:
        with self._lock:
            if observer in self._observers:
                return
            self._observers.append(observer)
        if self.has_value:
            self._notify(observer, self._value)

    def remove_observer(self, observer: Observer) -> None:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                pass

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def set_value(self, value: T) -> None:
        self._value = value
        with self._lock:
            snapshot = list(self._observers)
        for observer in snapshot:
            # Skip observers removed by an earlier observer in this round
            with self._lock:
                still_registered = observer in self._observers
            if still_registered:
                self._notify(observer, value)

    def post_value(self, value: T) -> None:
        if self._loop is None or self._loop.is_closed():
            self.set_value(value)
            return
        self._loop.call_soon_threadsafe(self.set_value, value)

    def map(self, transform: Callable[[T], R]) -> "LiveValue[R]":
        """Derived value that follows this one through `transform`."""
        derived: LiveValue[R] = LiveValue(loop=self._loop)
        self.observe(lambda value: derived.set_value(transform(value)))
        return derived

    @staticmethod
    def _notify(observer: Observer, value: object) -> None:
        try:
            observer(value)
        except Exception:
            logger.exception("Observer raised", extra={"observer": repr(observer)})


class Event(Generic[T]):
    """Content that is handed out at most once."""

    def __init__(self, content: T):
        self._content = content
        self._handled = False
        self._lock = threading.Lock()

    @property
    def has_been_handled(self) -> bool:
        return self._handled

    def get_content_if_not_handled(self) -> Optional[T]:
        with self._lock:
            if self._handled:
                return None
            self._handled = True
            return self._content

    def __repr__(self) -> str:
        return f"Event({self._content!r}, handled={self._handled})"
