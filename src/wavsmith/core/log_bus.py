"""In-process fan-out of wavsmith log lines.

Every line the wavsmith logger emits is also handed to the bus as a
LogRecord. set_log_sink() and tests attach here to see the same plain text
the console gets, whether a line came from the main thread or from a batch
worker thread.

A subscriber that raises loses that one record; other subscribers and the
pipeline that logged it carry on.
"""

from __future__ import annotations

import contextlib
import sys
import threading
import traceback
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class LogRecord:
    level_name: str  # upper case, e.g. "INFO" or "ERROR"
    plain: str  # uncoloured console line, "[info] ..."
    logger_name: str


Subscriber = Callable[[LogRecord], None]


class LogBus:
    """Thread-safe registry of log subscribers, global or per level."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_level: dict[str, list[Subscriber]] = {}
        self._everything: list[Subscriber] = []

    def subscribe(self, level_name: str, cb: Subscriber) -> None:
        """Deliver only records of one level to cb."""
        with self._lock:
            self._by_level.setdefault(level_name, []).append(cb)

    def unsubscribe(self, level_name: str, cb: Subscriber) -> None:
        with self._lock:
            subs = self._by_level.get(level_name, [])
            if cb in subs:
                subs.remove(cb)
            if not subs:
                self._by_level.pop(level_name, None)

    def subscribe_all(self, cb: Subscriber) -> None:
        """Deliver every record to cb, ahead of the per-level subscribers."""
        with self._lock:
            self._everything.append(cb)

    def unsubscribe_all(self, cb: Subscriber) -> None:
        with self._lock:
            if cb in self._everything:
                self._everything.remove(cb)

    def publish(self, record: LogRecord) -> None:
        # Copy under the lock; callbacks run unlocked so they may log or resubscribe.
        with self._lock:
            targets = [*self._everything, *self._by_level.get(record.level_name, ())]

        for cb in targets:
            self._deliver(cb, record)

    def clear(self) -> None:
        """Drop every subscriber."""
        with self._lock:
            self._by_level.clear()
            self._everything.clear()

    @staticmethod
    def _deliver(cb: Subscriber, record: LogRecord) -> None:
        try:
            cb(record)
        except Exception:
            # Straight to stderr: going through the logger would publish again.
            report = (
                f"wavsmith: log subscriber raised on a {record.level_name.lower()} line; "
                "record skipped for it\n" + traceback.format_exc()
            )
            with contextlib.suppress(Exception):
                sys.stderr.write(report)


_bus: LogBus | None = None


def get_log_bus() -> LogBus:
    """Process-wide bus shared by every wavsmith logger."""
    global _bus
    if _bus is None:
        _bus = LogBus()
    return _bus
