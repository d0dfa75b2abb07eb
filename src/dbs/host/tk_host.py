# src/dbs/host/tk_host.py
import logging
import time
import tkinter as tk
from typing import Any

from .provider import Callback, SchedulingHost

logger = logging.getLogger("DebounceScheduler")


class TkHost(SchedulingHost):
    """Schedules on a Tk event loop: ``after`` for delays, ``after_idle`` for frames.

    Tk redraws from its idle queue, so an idle callback is the closest thing to
    "next frame" the toolkit offers.
    """
    def __init__(self, tk_root, idle_frames: bool = True):
        self.tk_root = tk_root
        self.idle_frames = idle_frames

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def schedule(self, callback: Callback, delay_ms: float) -> Any:
        return self.tk_root.after(max(0, int(round(delay_ms))), callback)

    def cancel(self, handle: Any) -> None:
        try:
            self.tk_root.after_cancel(handle)
        except tk.TclError:
            # root already destroyed, nothing left to cancel
            logger.debug("after_cancel(%s) ignored", handle)

    def supports_frames(self) -> bool:
        return self.idle_frames

    def schedule_frame(self, callback: Callback) -> Any:
        return self.tk_root.after_idle(callback)

    def cancel_frame(self, handle: Any) -> None:
        self.cancel(handle)
