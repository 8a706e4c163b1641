import time
from datetime import datetime


class Clock:
    """Wall-clock time source, in seconds since the epoch."""

    def now(self) -> float:
        return time.time()

    def time_of_day(self) -> str:
        # HH:mm:ss is what existing consumers parse
        return datetime.fromtimestamp(self.now()).strftime("%H:%M:%S")


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now


def to_millis(seconds: float) -> int:
    return int(round(seconds * 1000))
