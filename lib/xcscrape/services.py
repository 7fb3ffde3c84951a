"""Id generation and time sources used when descriptors are created."""
import itertools
import threading
import time


class SequentialIdGenerator:
    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def generate_id(self) -> int:
        with self._lock:
            return next(self._counter)


class SystemClock:
    def current_time(self) -> int:
        """Wall-clock time in milliseconds since the epoch."""
        return int(time.time() * 1000)
