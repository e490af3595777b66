"""Clock — the time/height reference every evaluation is made against.

A :class:`ClockReading` is a snapshot of wall-clock seconds and a monotonic
height counter. Operations take one reading up front and evaluate every
record against that same snapshot, so a single call never sees time move.
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ClockReading:
    """A point-in-time reference.

    Parameters
    ----------
    unix_timestamp:
        Wall-clock seconds since the epoch.
    height:
        Monotonic block/height counter.
    """

    unix_timestamp: int
    height: int


class Clock(ABC):
    """Source of the current time and height. Assumed non-decreasing."""

    @abstractmethod
    def now(self) -> ClockReading:
        """Return the current reading."""


class SystemClock(Clock):
    """Wall-clock time with a height counter derived from elapsed slots.

    Parameters
    ----------
    slot_seconds:
        Seconds per height increment. Height is ``(now - genesis) // slot_seconds``.
    genesis:
        Unix timestamp corresponding to height zero. Defaults to process start.
    """

    def __init__(self, slot_seconds: float = 0.4, genesis: float | None = None) -> None:
        if slot_seconds <= 0:
            raise ValueError("slot_seconds must be positive.")
        self._slot_seconds = slot_seconds
        self._genesis = time.time() if genesis is None else genesis

    def now(self) -> ClockReading:
        current = time.time()
        return ClockReading(
            unix_timestamp=int(current),
            height=max(0, int((current - self._genesis) // self._slot_seconds)),
        )


class ManualClock(Clock):
    """A settable clock for tests and deterministic replays.

    Thread-safe. Refuses to move backwards.
    """

    def __init__(self, unix_timestamp: int = 0, height: int = 0) -> None:
        self._reading = ClockReading(unix_timestamp=unix_timestamp, height=height)
        self._lock = threading.Lock()

    def now(self) -> ClockReading:
        with self._lock:
            return self._reading

    def set(self, unix_timestamp: int | None = None, height: int | None = None) -> None:
        """Move the clock to an absolute reading.

        Raises
        ------
        ValueError
            If either component would decrease.
        """
        with self._lock:
            new_ts = self._reading.unix_timestamp if unix_timestamp is None else unix_timestamp
            new_height = self._reading.height if height is None else height
            if new_ts < self._reading.unix_timestamp or new_height < self._reading.height:
                raise ValueError("ManualClock cannot move backwards.")
            self._reading = ClockReading(unix_timestamp=new_ts, height=new_height)

    def advance(self, seconds: int = 0, height: int = 0) -> ClockReading:
        """Advance by relative amounts and return the new reading."""
        if seconds < 0 or height < 0:
            raise ValueError("ManualClock cannot move backwards.")
        with self._lock:
            self._reading = ClockReading(
                unix_timestamp=self._reading.unix_timestamp + seconds,
                height=self._reading.height + height,
            )
            return self._reading


__all__ = ["Clock", "ClockReading", "ManualClock", "SystemClock"]
