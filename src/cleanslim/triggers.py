"""Named request signals ("scan now", "clean all") raised by front ends."""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

SCAN_NOW = "scan_now"
CLEAN_ALL = "clean_all"

Handler = Callable[[], object]


class RequestBus:
    """
    Minimal publish/subscribe channel for user requests.

    Menus, hotkeys or the CLI emit a signal name; subscribers (normally the
    orchestrator) run synchronously on the emitting thread.
    """

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, signal: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(signal, []).append(handler)

    def unsubscribe(self, signal: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(signal, [])
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, signal: str) -> int:
        """
        Deliver a signal to its subscribers.

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = list(self._handlers.get(signal, []))

        if not handlers:
            logger.debug(f"No handlers for signal {signal!r}")

        for handler in handlers:
            try:
                handler()
            except Exception as e:
                logger.error(f"Handler for {signal!r} failed: {e}", exc_info=True)
        return len(handlers)
