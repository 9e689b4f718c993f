"""
A cancellation token shared by the tasks of one enrichment run.
"""

import logging
from typing import Callable

log = logging.getLogger(__name__)


class CancellationToken:
    """
    Set once at teardown. Callbacks registered with `on_cancel` run exactly
    once, immediately if the token is already cancelled.
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                log.error(f"Cancellation callback failed: {e}")

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Registers `callback`; returns a function that unregisters it."""
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def _unregister():
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unregister
