import logging
from typing import Protocol

log = logging.getLogger(__name__)


class ProgressSink(Protocol):
    def advance(self, fraction: float) -> None: ...


class NullProgress:
    def advance(self, fraction: float) -> None:
        pass


class LoggingProgress:
    """Reports progress at debug level, in whole percent steps."""

    def __init__(self, step: int = 10):
        self.step = step
        self.completed = 0.0
        self._last_reported = 0

    def advance(self, fraction: float) -> None:
        self.completed = min(1.0, self.completed + fraction)
        percent = int(self.completed * 100)
        if percent - self._last_reported >= self.step or percent == 100 and self._last_reported != 100:
            self._last_reported = percent
            log.debug("Scan progress: %d%%", percent)
