"""
Edit batching.

Editors report changed lines many times per keystroke or scroll. The batcher
collects those notifications and hands them over once activity pauses.
"""

import asyncio
import threading
from collections.abc import Callable, Mapping

from loguru import logger

LineTextProvider = Callable[[], str]
FlushCallback = Callable[[dict[int, LineTextProvider]], None]


class EditBatcher:
    """Trailing-edge debounce of line-change notifications.

    Every notification restarts the quiescence timer; when it elapses the
    accumulated lines are flushed once. A later notification for a line
    replaces the earlier provider for it. Flushes run on the event loop, so
    they never overlap.
    """

    def __init__(
        self,
        on_flush: FlushCallback,
        delay: float = 0.2,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Initialize the batcher.

        Args:
            on_flush: Receives each batch as a line number to text provider map
            delay: Quiescence window in seconds
            loop: Event loop to schedule on; defaults to the loop running
                the first notification
        """
        self.delay = delay
        self._on_flush = on_flush
        self._loop = loop
        self._pending: dict[int, LineTextProvider] = {}
        self._lock = threading.Lock()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending_lines(self) -> list[int]:
        with self._lock:
            return sorted(self._pending)

    def notify(self, providers: Mapping[int, LineTextProvider]) -> None:
        """Record changed lines and restart the quiescence window.

        Safe to call from any thread once the batcher is bound to a loop.
        """
        if not providers:
            return

        loop = self._get_loop()
        with self._lock:
            self._pending.update(providers)

        if current_loop() is loop:
            self._restart_timer()
        else:
            loop.call_soon_threadsafe(self._restart_timer)

    def flush_now(self) -> int:
        """Flush pending lines immediately.

        Returns:
            Number of lines handed to the flush callback
        """
        self._cancel_timer()
        with self._lock:
            batch, self._pending = self._pending, {}

        if not batch:
            return 0

        logger.debug("Flushing {} changed lines", len(batch))
        self._on_flush(batch)
        return len(batch)

    def close(self) -> None:
        """Cancel the timer and drop pending notifications."""
        self._cancel_timer()
        with self._lock:
            self._pending.clear()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = self._get_loop().call_later(self.delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self.flush_now()


def current_loop() -> asyncio.AbstractEventLoop | None:
    """Return the event loop running on this thread, or None."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
