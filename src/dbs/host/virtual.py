# src/dbs/host/virtual.py
"""
Deterministic host driven by a manual clock.

Nothing happens until the caller advances time; callbacks then fire in order
of due time (ties in scheduling order) with ``now()`` pinned to each one's due
time. Used by the simulator and the test-suite.
"""
import heapq
import itertools
import logging
import math
from typing import Dict, List, Optional, Tuple

from .provider import Callback, SchedulingHost

logger = logging.getLogger("DebounceScheduler")


class VirtualHost(SchedulingHost):
    def __init__(self, start_ms: float = 0.0, frame_ms: Optional[float] = None):
        if frame_ms is not None and frame_ms <= 0:
            raise ValueError("frame_ms must be > 0")
        self._now = float(start_ms)
        self.frame_ms = frame_ms
        self._queue: List[Tuple[float, int]] = []
        self._callbacks: Dict[int, Callback] = {}
        self._seq = itertools.count(1)

    # ---------- clock ----------
    def now(self) -> float:
        return self._now

    def jump_to(self, t_ms: float) -> None:
        """Move the clock without firing anything (may go backwards)."""
        self._now = float(t_ms)

    # ---------- primitives ----------
    def schedule(self, callback: Callback, delay_ms: float) -> int:
        return self._push(self._now + max(0.0, delay_ms), callback)

    def cancel(self, handle: int) -> None:
        self._callbacks.pop(handle, None)

    def supports_frames(self) -> bool:
        return self.frame_ms is not None

    def schedule_frame(self, callback: Callback) -> int:
        if self.frame_ms is None:
            raise NotImplementedError("VirtualHost created without frame_ms")
        due = (math.floor(self._now / self.frame_ms) + 1) * self.frame_ms
        return self._push(due, callback)

    def cancel_frame(self, handle: int) -> None:
        self.cancel(handle)

    def _push(self, due: float, callback: Callback) -> int:
        handle = next(self._seq)
        self._callbacks[handle] = callback
        heapq.heappush(self._queue, (due, handle))
        return handle

    # ---------- driving ----------
    def pending_count(self) -> int:
        return len(self._callbacks)

    def next_due(self) -> Optional[float]:
        while self._queue and self._queue[0][1] not in self._callbacks:
            heapq.heappop(self._queue)
        return self._queue[0][0] if self._queue else None

    def advance(self, delta_ms: float) -> int:
        return self.advance_to(self._now + delta_ms)

    def advance_to(self, t_ms: float) -> int:
        """Fire everything due up to ``t_ms``; returns how many callbacks ran.

        Callback exceptions propagate to the caller; the clock stays at the
        failing callback's due time.
        """
        ran = 0
        while True:
            due = self.next_due()
            if due is None or due > t_ms:
                break
            _, handle = heapq.heappop(self._queue)
            callback = self._callbacks.pop(handle)
            self._now = max(self._now, due)
            ran += 1
            callback()
        self._now = max(self._now, float(t_ms))
        return ran

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Fire callbacks until none remain."""
        ran = 0
        while ran < limit:
            due = self.next_due()
            if due is None:
                return ran
            ran += self.advance_to(due)
        logger.warning("run_until_idle stopped after %d callbacks", limit)
        return ran
