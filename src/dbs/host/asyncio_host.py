# src/dbs/host/asyncio_host.py
import asyncio
import time
from typing import Any, Optional

from .provider import Callback, SchedulingHost


class AsyncioHost(SchedulingHost):
    """Delay timers on an asyncio loop.

    Without an explicit loop the running one is looked up each time a timer is
    armed, so the host can be created before the loop starts. asyncio has no
    frame primitive.
    """
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop

    def _loop(self) -> asyncio.AbstractEventLoop:
        return self.loop if self.loop is not None else asyncio.get_running_loop()

    def now(self) -> float:
        if self.loop is not None:
            return self.loop.time() * 1000.0
        # same clock as BaseEventLoop.time()
        return time.monotonic() * 1000.0

    def schedule(self, callback: Callback, delay_ms: float) -> Any:
        return self._loop().call_later(max(0.0, delay_ms) / 1000.0, callback)

    def cancel(self, handle: Any) -> None:
        handle.cancel()

    def supports_frames(self) -> bool:
        return False

    def schedule_frame(self, callback: Callback) -> Any:
        raise NotImplementedError("asyncio has no frame scheduling primitive")

    def cancel_frame(self, handle: Any) -> None:
        raise NotImplementedError("asyncio has no frame scheduling primitive")
