"""Notifier: explicit observer registration for player notifications."""
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Notifier:
    """Per-component notification hub: callbacks registered per event name."""

    def __init__(self):
        self._callbacks: dict[str, list[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register callback(data) for event. Returns an unsubscribe function."""
        self._callbacks.setdefault(event, []).append(callback)

        def _unsubscribe():
            callbacks = self._callbacks.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def emit(self, event: str, data: Any = None):
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(data)
            except Exception:
                logger.exception("Observer for %s failed", event)
