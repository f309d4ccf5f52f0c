"""Work partitioning across threads and periodic progress messages."""

from __future__ import annotations

import math
import threading
import time
from typing import TextIO

from .enums import STATUS_INTERVAL


def equal_split(start: int, end: int, num_parts: int) -> list[int]:
    """Boundaries that split the inclusive range start..end into num_parts nearly equal parts.

    Part i covers ``result[i]`` up to but excluding ``result[i + 1]``. Longer
    parts come first. If there are more parts than elements, every element
    becomes its own part.
    """
    if num_parts < 1:
        raise ValueError("Number of parts must be positive.")
    if num_parts == 1:
        return [start, end + 1]

    length = end - start + 1
    if num_parts > length:
        return list(range(start, end + 2))

    short_length = length // num_parts
    long_length = math.ceil(length / num_parts)
    cut_pos = length % num_parts

    long_end = start + cut_pos * long_length
    result = list(range(start, long_end, long_length))
    result.extend(range(long_end, end + 2, short_length))
    return result


def _unit(value: int, singular: str) -> str:
    return f"{value} {singular}" if value == 1 else f"{value} {singular}s"


def beautify_time(seconds: int) -> str:
    """Readable duration such as ``"3 hours, 44 minutes, 58 seconds"``."""
    seconds = int(seconds)
    result = f"{seconds % 60} seconds"
    minutes = seconds // 60
    if minutes == 0:
        return result
    result = f"{_unit(minutes % 60, 'minute')}, {result}"
    hours = minutes // 60
    if hours == 0:
        return result
    result = f"{_unit(hours % 24, 'hour')}, {result}"
    days = hours // 24
    if days == 0:
        return result
    return f"{_unit(days, 'day')}, {result}"


def _round_half_away(value: float) -> int:
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


class ProgressReporter:
    """Counts finished work items and reports progress once per interval.

    ``advance`` may be called from several threads.
    """

    def __init__(
        self,
        operation: str,
        max_progress: int,
        out: TextIO | None = None,
        interval: float = STATUS_INTERVAL,
    ) -> None:
        self.operation = operation
        self.max_progress = max_progress
        self.out = out
        self.interval = interval
        self.progress = 0
        self._lock = threading.Lock()
        self._start_time = time.monotonic()
        self._last_time = self._start_time

    @property
    def done(self) -> bool:
        """Whether all work items have been counted."""
        return self.progress >= self.max_progress

    def advance(self) -> str | None:
        """Count one finished item; return and write the message if one is due."""
        with self._lock:
            self.progress += 1
            now = time.monotonic()
            if now - self._last_time <= self.interval:
                return None
            relative = self.progress / self.max_progress if self.max_progress > 0 else 1.0
            from_start = int(now - self._start_time)
            remaining = max(int((1 / relative - 1) * from_start), 0)
            message = (
                f"{self.operation} Progress: {_round_half_away(100 * relative)}%. "
                f"Estimated remaining time: {beautify_time(remaining)}."
            )
            if self.out is not None:
                print(message, file=self.out)
            self._last_time = now
            return message