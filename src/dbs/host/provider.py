# src/dbs/host/provider.py
from typing import Any, Callable, Protocol

Callback = Callable[[], Any]


class SchedulingHost(Protocol):
    """Clock plus timer primitives an invoker schedules against (all times in ms)."""
    def now(self) -> float: ...
    def schedule(self, callback: Callback, delay_ms: float) -> Any: ...
    def cancel(self, handle: Any) -> None: ...
    def supports_frames(self) -> bool: ...
    def schedule_frame(self, callback: Callback) -> Any: ...
    def cancel_frame(self, handle: Any) -> None: ...
