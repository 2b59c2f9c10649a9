"""Repeating background timer."""

import threading
from typing import Callable, Protocol

from devedores.logging import get_logger

logger = get_logger(__name__)


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


class IntervalTimer:
    """Run a callable every ``interval`` seconds on a daemon thread.

    Exceptions raised by the callable are logged and do not stop the timer.
    """

    def __init__(self, interval: float, function: Callable[[], None], name: str = "devedores-timer") -> None:
        self.interval = interval
        self.function = function
        self.name = name
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.function()
            except Exception:
                logger.exception("Timer %s callback failed", self.name)
