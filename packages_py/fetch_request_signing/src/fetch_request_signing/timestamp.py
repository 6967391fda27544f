"""
Formatted timestamps that are recomputed at most once per refresh window
"""

import threading
import time
from email.utils import formatdate
from typing import Optional

from .types import Clock, TimestampFormatter


def http_date(seconds: float) -> str:
    """RFC 1123 date, e.g. ``Tue, 15 Nov 1994 08:12:31 GMT``."""
    return formatdate(seconds, usegmt=True)


def iso8601_timestamp(seconds: float) -> str:
    """ISO 8601 UTC timestamp, e.g. ``1994-11-15T08:12:31Z``."""
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(seconds))


class CachedTimestamp:
    """
    Thread-safe formatted timestamp.

    Formatting a date on every request is wasteful under load, so the value is
    kept until ``refresh_seconds`` have passed on the monotonic ``clock``.
    ``wall_clock`` supplies the time that is actually formatted.
    """

    def __init__(
        self,
        formatter: TimestampFormatter = http_date,
        refresh_seconds: float = 1.0,
        clock: Clock = time.monotonic,
        wall_clock: Clock = time.time,
    ) -> None:
        if refresh_seconds < 0:
            raise ValueError("refresh_seconds must be non-negative")
        self._formatter = formatter
        self._refresh_seconds = refresh_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._value: Optional[str] = None
        self._stamped_at = 0.0

    @property
    def refresh_seconds(self) -> float:
        return self._refresh_seconds

    def get(self) -> str:
        now = self._clock()
        with self._lock:
            if self._value is None or now - self._stamped_at >= self._refresh_seconds:
                self._value = self._formatter(self._wall_clock())
                self._stamped_at = now
            return self._value

    def __str__(self) -> str:
        return self.get()
