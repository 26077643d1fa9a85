"""Translation of local interrupt signals into a remote abort request."""

from __future__ import annotations

import logging
import queue
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_STOP = object()


class CancellationWatcher:
    """Background activity that calls ``abort`` once, on the first interrupt.

    ``notify`` is safe to call from a signal handler. The watcher never stops
    other activities itself; the caller keeps waiting for the build's terminal
    status, which the abort is expected to produce.
    """

    def __init__(self, abort: Callable[[], object]) -> None:
        self._abort = abort
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._thread: threading.Thread | None = None
        self.abort_requested = False

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="cancellation-watcher",
        )
        self._thread.start()

    def notify(self, signal_name: str) -> None:
        self._queue.put(signal_name)

    def stop(self, timeout: float | None = 10.0) -> None:
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout=timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if self.abort_requested:
                logger.info("Received %s; abort already requested, waiting for build", item)
                continue
            self.abort_requested = True
            logger.info("Received %s; aborting build", item)
            try:
                self._abort()
            except Exception:
                logger.exception("Abort request raised unexpectedly")


@contextmanager
def interrupt_handlers(on_interrupt: Callable[[str], None]) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``on_interrupt`` for the duration of the block."""

    if not hasattr(signal, "SIGINT"):
        yield
        return

    handled = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        handled.append(signal.SIGTERM)
    originals = {signum: signal.getsignal(signum) for signum in handled}

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        on_interrupt(name)

    try:
        for signum in handled:
            signal.signal(signum, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        logger.debug("Not in main thread; interrupts will not abort the build")
    try:
        yield
    finally:
        try:
            for signum, original in originals.items():
                signal.signal(signum, original)
        except ValueError:
            pass
