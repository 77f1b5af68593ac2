"""Pure Python signal system used for change notification.

Provides ``Signal`` for observer-pattern callbacks and the ``Listenable``
mixin that gives tree nodes, filters, aggregations and slot managers a
uniform ``add_change_listener`` / ``notify_changed`` surface.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

_logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Signal:
    """Pure Python signal.

    Handler mutations are protected by a lock and emission works on a
    snapshot, so a handler may connect or disconnect other handlers while
    being called.  Exceptions raised by individual handlers are caught and
    logged so that one failing handler does not prevent subsequent handlers
    from executing.
    """

    def __init__(self) -> None:
        self._handlers: list[Callable] = []
        self._lock = threading.Lock()

    def connect(self, handler: Callable) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def disconnect(self, handler: Callable) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def emit(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(*args, **kwargs)
            except Exception as exc:
                _logger.error("Signal handler %r failed: %s", handler, exc)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)


class Listenable:
    """Mixin adding zero-argument change notification.

    The backing ``Signal`` is created lazily so that the thousands of nodes a
    large tree holds do not each pay for a lock they never use.
    """

    _change_signal: Optional[Signal] = None

    def add_change_listener(self, listener: Listener) -> None:
        if self._change_signal is None:
            self._change_signal = Signal()
        self._change_signal.connect(listener)

    def remove_change_listener(self, listener: Listener) -> None:
        if self._change_signal is not None:
            self._change_signal.disconnect(listener)

    def notify_changed(self) -> None:
        if self._change_signal is not None:
            self._change_signal.emit()

    @property
    def has_listeners(self) -> bool:
        return self._change_signal is not None and self._change_signal.handler_count > 0

    def dispose(self) -> None:
        """Drop every listener; no further notifications are delivered."""
        if self._change_signal is not None:
            self._change_signal.clear()
