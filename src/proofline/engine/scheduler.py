"""Debounce/cooldown scheduling of per-document analysis runs."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Hashable, Protocol

__all__ = [
    "AnalysisScheduler",
    "AsyncioTimerBackend",
    "ManualTimerBackend",
    "ScheduleState",
    "TimerBackend",
    "TimerHandle",
    "compute_delay",
]

LOGGER = logging.getLogger(__name__)

SnapshotProvider = Callable[[], str]
FireCallback = Callable[[Hashable, str], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerBackend(Protocol):
    """Clock plus single-shot timers; times are in seconds."""

    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioTimerBackend:
    """Timers driven by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        if self._loop is None:
            return time.monotonic()
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


class _ManualHandle:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerBackend:
    """Virtual clock; timers fire only when :meth:`advance` moves time forward."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers in order; returns the count fired."""

        target = self._now + max(0.0, seconds)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            handle.callback()
            fired += 1
        self._now = target
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)


@dataclass(slots=True)
class ScheduleState:
    """Timer bookkeeping for one document."""

    pending: TimerHandle | None = None
    due_at: float | None = None
    delay: float = 0.0
    last_commit_at: float | None = None


def compute_delay(now: float, debounce: float, cooldown: float, last_commit_at: float | None) -> tuple[float, float]:
    """Return ``(due, delay)`` honoring both the debounce and the cooldown window."""

    due = now + max(0.0, debounce)
    if last_commit_at is not None:
        due = max(due, last_commit_at + max(0.0, cooldown))
    return due, max(0.0, due - now)


class AnalysisScheduler:
    """Keeps at most one pending analysis timer per document key.

    Every :meth:`schedule` call cancels the previous timer, so a burst of
    edits collapses into one run fired after the last edit.
    """

    def __init__(self, on_fire: FireCallback, *, backend: TimerBackend | None = None) -> None:
        self._on_fire = on_fire
        self._backend = backend or AsyncioTimerBackend()
        self._states: dict[Hashable, ScheduleState] = {}

    @property
    def backend(self) -> TimerBackend:
        return self._backend

    def now(self) -> float:
        return self._backend.now()

    def schedule(
        self,
        key: Hashable,
        snapshot_provider: SnapshotProvider,
        debounce_ms: float,
        cooldown_ms: float,
    ) -> float:
        """Arm (or re-arm) the timer for ``key``; returns the delay in seconds."""

        state = self._states.setdefault(key, ScheduleState())
        if state.pending is not None:
            state.pending.cancel()
        now = self._backend.now()
        due, delay = compute_delay(now, debounce_ms / 1000.0, cooldown_ms / 1000.0, state.last_commit_at)
        state.due_at = due
        state.delay = delay
        state.pending = self._backend.call_later(delay, lambda: self._fire(key, state, snapshot_provider))
        LOGGER.debug("Analysis for %s scheduled in %.3fs", key, delay)
        return delay

    def record_commit(self, key: Hashable, at: float | None = None) -> None:
        state = self._states.setdefault(key, ScheduleState())
        state.last_commit_at = self._backend.now() if at is None else at

    def last_commit_at(self, key: Hashable) -> float | None:
        state = self._states.get(key)
        return state.last_commit_at if state else None

    def is_pending(self, key: Hashable) -> bool:
        state = self._states.get(key)
        return bool(state and state.pending is not None)

    def state(self, key: Hashable) -> ScheduleState | None:
        return self._states.get(key)

    def cancel(self, key: Hashable) -> bool:
        state = self._states.get(key)
        if state is None or state.pending is None:
            return False
        state.pending.cancel()
        state.pending = None
        state.due_at = None
        return True

    def forget(self, key: Hashable) -> None:
        self.cancel(key)
        self._states.pop(key, None)

    def cancel_all(self) -> None:
        for key in list(self._states):
            self.cancel(key)

    def _fire(self, key: Hashable, state: ScheduleState, snapshot_provider: SnapshotProvider) -> None:
        if self._states.get(key) is not state:
            return
        state.pending = None
        state.due_at = None
        try:
            text = snapshot_provider()
        except Exception:
            LOGGER.exception("Snapshot provider failed for %s", key)
            return
        self._on_fire(key, text or "")
