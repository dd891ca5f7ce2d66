"""Outbound event delivery."""

import logging
from typing import Callable, List, Union

from ..models.horoscope import CacheCleared, FetchFailed, FetchSucceeded

logger = logging.getLogger(__name__)

Event = Union[FetchSucceeded, FetchFailed, CacheCleared]
Listener = Callable[[Event], None]


class EventBus:
    """Delivers events to subscribed callbacks in subscription order."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener.

        Args:
            listener: Callable receiving each event

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Send an event to every listener.

        A listener that raises is logged and skipped; the others still run.
        """
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Event listener failed on {type(event).__name__}")
