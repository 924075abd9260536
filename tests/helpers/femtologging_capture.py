"""Capture femtologging output in tests."""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import time
import typing as typ

from femtologging import get_logger


@dataclasses.dataclass(slots=True)
class CapturedRecord:
    """One captured log line."""

    logger: str
    level: str
    message: str


class LogCapture:
    """femtologging handler collecting records for assertions.

    femtologging dispatches on a worker thread, so assertions should call
    :meth:`wait_for_count` before inspecting :attr:`records`.
    """

    def __init__(self) -> None:
        """Initialise storage and the notification condition."""
        self.records: list[CapturedRecord] = []
        self._condition = threading.Condition()

    def handle(self, logger: str, level: str, message: str) -> None:
        """Receive a record from femtologging."""
        with self._condition:
            self.records.append(
                CapturedRecord(logger=str(logger), level=str(level), message=message)
            )
            self._condition.notify_all()

    def wait_for_count(self, count: int, timeout: float = 1.0) -> None:
        """Block until at least ``count`` records arrived or fail."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while len(self.records) < count:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)

        assert len(self.records) >= count, (
            f"Expected {count} records, got {len(self.records)}"
        )

    def messages(self, level: str | None = None) -> list[str]:
        """Return captured messages, optionally filtered by level."""
        return [
            record.message
            for record in self.records
            if level is None or record.level == level
        ]


@contextlib.contextmanager
def capture_logs(logger_name: str, *, level: str = "TRACE") -> typ.Iterator[LogCapture]:
    """Attach a :class:`LogCapture` to the named logger for the block."""
    logger = get_logger(logger_name)
    previous_level = logger.level
    previous_propagate = logger.propagate
    logger.set_level(level)
    logger.set_propagate(False)

    handler = LogCapture()
    logger.add_handler(handler)
    try:
        yield handler
    finally:
        logger.remove_handler(handler)
        logger.set_level(previous_level)
        logger.set_propagate(previous_propagate)
