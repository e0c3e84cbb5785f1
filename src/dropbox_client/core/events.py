"""Publish/subscribe event sources used by the client."""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class EventSource:
    """
    An ordered list of listeners that receive one event object.

    A cancelable source lets any listener veto the action being announced by
    returning False; the remaining listeners are skipped and dispatch()
    returns False. Returning None (or anything else) does not veto. A
    non-cancelable source ignores return values and always returns True.
    """

    def __init__(self, cancelable: bool = False) -> None:
        self.cancelable = cancelable
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> "EventSource":
        """Register a listener. Adding the same listener twice is a no-op."""
        if not callable(listener):
            raise TypeError("Event listeners must be callable")
        if listener not in self._listeners:
            self._listeners.append(listener)
        return self

    def remove_listener(self, listener: Listener) -> "EventSource":
        """Unregister a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)
        return self

    def dispatch(self, event: Any) -> bool:
        """
        Call every listener with event, in registration order.

        Returns:
            False if a listener of a cancelable source vetoed, True otherwise.
        """
        # Copy so listeners may unsubscribe while being called
        for listener in list(self._listeners):
            result = listener(event)
            if self.cancelable and result is False:
                logger.debug(f"Event vetoed by listener {listener!r}")
                return False
        return True

    def __len__(self) -> int:
        return len(self._listeners)
