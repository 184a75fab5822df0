"""Timer wheel-less timer set with lock-free style expiration semantics.

Timers live in a fixed-size table. Each has an expiration tick; a timer is
inactive when its expiration equals :data:`TICK_INVALID`. Expiring a timer
atomically swaps its expiration back to invalid, so of several threads that
race to expire (or to reset or cancel) the same timer exactly one wins.
The atomic operations are emulated with a private mutex.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

TICK_INVALID = (1 << 64) - 1
DEFAULT_MAX_TIMERS = 8192

TimerCallback = Callable[[int, int, Any], None]


class TimerError(Exception):
    """Raised for an invalid timer, tick or expiration, or a misuse of a timer."""


class Timers:
    """A table of timers driven by an externally advanced tick counter."""

    def __init__(self, max_timers: int = DEFAULT_MAX_TIMERS) -> None:
        if max_timers <= 0:
            raise ValueError("max_timers must be positive")
        self._atomic = threading.Lock()
        self._expirations = [TICK_INVALID] * max_timers
        self._callbacks: list[TimerCallback | None] = [None] * max_timers
        self._args: list[Any] = [None] * max_timers
        self._allocated = [False] * max_timers
        # Stack of free timers; the lowest index is handed out first.
        self._free = list(range(max_timers - 1, -1, -1))
        self._hi_watermark = 0
        self._current = 0
        self._earliest = TICK_INVALID

    @property
    def tick(self) -> int:
        """The current tick."""
        return self._current

    # -- allocation -------------------------------------------------------

    def alloc(self, callback: TimerCallback, arg: Any = None) -> int | None:
        """Allocate an inactive timer; return its id, or ``None`` if none is free."""
        with self._atomic:
            if not self._free:
                return None
            idx = self._free.pop()
            self._expirations[idx] = TICK_INVALID
            self._callbacks[idx] = callback
            self._args[idx] = arg
            self._allocated[idx] = True
            self._hi_watermark = max(self._hi_watermark, idx + 1)
            return idx

    def free(self, timer: int) -> None:
        """Return an inactive timer to the free list."""
        with self._atomic:
            self._check_timer(timer)
            if self._expirations[timer] != TICK_INVALID:
                raise TimerError(f"cannot free active timer: {timer}")
            self._callbacks[timer] = None
            self._args[timer] = None
            self._allocated[timer] = False
            self._free.append(timer)

    def _check_timer(self, timer: int) -> None:
        if not 0 <= timer < self._hi_watermark or not self._allocated[timer]:
            raise TimerError(f"invalid timer: {timer}")

    # -- arming -----------------------------------------------------------

    @staticmethod
    def _check_expiration(expiration: int) -> None:
        if not 0 <= expiration < TICK_INVALID:
            raise TimerError(f"invalid expiration time: {expiration}")

    def _update_expiration(self, timer: int, expiration: int, active: bool) -> bool:
        with self._atomic:
            self._check_timer(timer)
            old = self._expirations[timer]
            if (old == TICK_INVALID) if active else (old != TICK_INVALID):
                return False
            self._expirations[timer] = expiration
            if expiration != TICK_INVALID:
                self._earliest = min(self._earliest, expiration)
            return True

    def set(self, timer: int, expiration: int) -> bool:
        """Activate an inactive timer; return False if it is already active."""
        self._check_expiration(expiration)
        return self._update_expiration(timer, expiration, active=False)

    def reset(self, timer: int, expiration: int) -> bool:
        """Move an active timer's expiration; return False if it is inactive."""
        self._check_expiration(expiration)
        return self._update_expiration(timer, expiration, active=True)

    def cancel(self, timer: int) -> bool:
        """Deactivate an active timer; return False if it is inactive."""
        return self._update_expiration(timer, TICK_INVALID, active=True)

    # -- time -------------------------------------------------------------

    def advance(self, tick: int) -> None:
        """Set the current tick; time never runs backwards, so smaller ticks are ignored."""
        if not 0 <= tick < TICK_INVALID:
            raise TimerError(f"invalid tick: {tick}")
        with self._atomic:
            if tick > self._current:
                self._current = tick

    def expire(self) -> int:
        """Fire every active timer due at the current tick; return how many fired."""
        with self._atomic:
            now = self._current
            if self._earliest > now:
                return 0
            self._earliest = TICK_INVALID
            top = self._hi_watermark

        earliest = TICK_INVALID
        fired = 0
        for idx in range(top):
            with self._atomic:
                exp = self._expirations[idx]
                if exp > now:
                    earliest = min(earliest, exp)
                    continue
                self._expirations[idx] = TICK_INVALID
                callback = self._callbacks[idx]
                arg = self._args[idx]
            if callback is not None:
                callback(idx, exp, arg)
                fired += 1

        with self._atomic:
            self._earliest = min(self._earliest, earliest)
        return fired