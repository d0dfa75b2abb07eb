# src/dbs/utils/debounce.py
"""
Debounced invoker.

Wraps one callable and decides when it actually runs given a rapid sequence of
calls. Bursts collapse to a leading and/or trailing execution; ``maxWait`` puts
an upper bound on how long continuous triggering may defer it.

    save = debounce(store.save, 250, host=TkHost(root))
    save(doc); save(doc); save(doc)     # one save, 250 ms after the last call

All state lives on the instance; timers come from a SchedulingHost (Tk,
asyncio or a virtual clock).
"""
import functools
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from dbs.host.asyncio_host import AsyncioHost
from dbs.host.provider import Callback, SchedulingHost
from dbs.utils.numbers import coerce_wait
from dbs.utils.options import parse_options

logger = logging.getLogger("DebounceScheduler")

_NO_CONTEXT = object()


class InvalidOperand(TypeError):
    """The debounced target is not callable."""


class _DelayScheduling:
    def __init__(self, host: SchedulingHost):
        self.host = host

    def start(self, callback: Callback, wait: float) -> Any:
        return self.host.schedule(callback, wait)

    def stop(self, handle: Any) -> None:
        self.host.cancel(handle)


class _FrameScheduling:
    def __init__(self, host: SchedulingHost):
        self.host = host

    def start(self, callback: Callback, wait: float) -> Any:
        return self.host.schedule_frame(callback)

    def stop(self, handle: Any) -> None:
        self.host.cancel_frame(handle)


class _BoundInvoker:
    """Invoker seen through an instance: calls carry the instance as context.

    State is shared with the class-level invoker, as for any method decorator.
    """
    def __init__(self, invoker: "DebouncedInvoker", obj: Any):
        self.invoker = invoker
        self.obj = obj
        functools.update_wrapper(self, invoker.func, updated=())

    def __call__(self, *args, **kwargs) -> Any:
        return self.invoker.call_with(self.obj, *args, **kwargs)

    def cancel(self) -> None:
        self.invoker.cancel()

    def flush(self) -> Any:
        return self.invoker.flush()

    def pending(self) -> bool:
        return self.invoker.pending()

    @property
    def result(self) -> Any:
        return self.invoker.result


class DebouncedInvoker:
    """Callable wrapper that delays ``func`` until ``wait`` ms pass without a new call.

    Parameters
    ----------
    func : callable
        Target operation. Invoked with the arguments of the most recent call.
    wait : float, optional
        Quiet period in ms. Non-numeric values count as 0. When omitted and the
        host has a frame primitive, executions are deferred to the next frame.
    options : mapping or DebounceOptions, optional
        ``leading`` (default False), ``trailing`` (default True) and
        ``maxWait``/``max_wait``: the longest ``func`` may be deferred.
    host : SchedulingHost, optional
        Clock and timers. Defaults to the running asyncio loop.

    Calling the invoker returns the result of the last execution. If
    ``leading`` and ``trailing`` are both on, the trailing execution only
    happens when the invoker was called more than once during the cycle.
    """

    def __init__(self, func: Callable[..., Any], wait: Optional[float] = None,
                 options: Any = None, *, host: Optional[SchedulingHost] = None):
        if not callable(func):
            raise InvalidOperand(f"Expected a callable, got {type(func).__name__}")
        self.func = func
        self.host = host if host is not None else AsyncioHost()

        # an omitted wait means "next frame" where the host can do frames; an explicit 0 never does
        self.frame_mode = wait is None and self.host.supports_frames()
        self.wait = coerce_wait(wait)
        opts = parse_options(options, self.wait)
        self.leading = opts.leading
        self.trailing = opts.trailing
        self.max_wait = opts.max_wait
        self.maxing = opts.maxing
        self._scheduling = _FrameScheduling(self.host) if self.frame_mode else _DelayScheduling(self.host)

        self.result: Any = None
        self._last_args: Optional[Tuple[tuple, Dict[str, Any]]] = None
        self._last_context: Any = _NO_CONTEXT
        self._last_call_time: Optional[float] = None
        self._last_invoke_time: float = 0
        self._timer: Any = None

        self._name = getattr(func, "__qualname__", None) or repr(func)
        functools.update_wrapper(self, func, updated=())

    def __repr__(self) -> str:
        return (f"<DebouncedInvoker {self._name} wait={self.wait:g} leading={self.leading} "
                f"trailing={self.trailing} max_wait={self.max_wait} pending={self.pending()}>")

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return _BoundInvoker(self, obj)

    # ---------- entry points ----------
    def __call__(self, *args, **kwargs) -> Any:
        return self._trigger(_NO_CONTEXT, args, kwargs)

    def call_with(self, context: Any, *args, **kwargs) -> Any:
        """Trigger with an explicit call context, passed to ``func`` as first argument."""
        return self._trigger(context, args, kwargs)

    def cancel(self) -> None:
        if self._timer is not None:
            self._scheduling.stop(self._timer)
            logger.debug("%s: cancelled pending cycle", self._name)
        self._last_invoke_time = 0
        self._last_args = None
        self._last_call_time = None
        self._last_context = _NO_CONTEXT
        self._timer = None

    def flush(self) -> Any:
        """Run a pending trailing execution now; returns the latest result."""
        if self._timer is None:
            return self.result
        self._scheduling.stop(self._timer)
        return self._trailing_edge(self.host.now())

    def pending(self) -> bool:
        return self._timer is not None

    # ---------- state machine ----------
    def _trigger(self, context: Any, args: tuple, kwargs: Dict[str, Any]) -> Any:
        time = self.host.now()
        is_invoking = self._should_invoke(time)

        self._last_args = (args, kwargs)
        self._last_context = context
        self._last_call_time = time

        if is_invoking:
            if self._timer is None:
                return self._leading_edge(time)
            if self.maxing and not self.frame_mode:
                # tight loop: calls keep arriving faster than wait but max_wait elapsed
                # (in frame mode the pending frame runs it, once per frame)
                self._start_timer(self.wait)
                return self._invoke(time)
        if self._timer is None:
            self._start_timer(self.wait)
        return self.result

    def _should_invoke(self, time: float) -> bool:
        if self._last_call_time is None:
            return True
        since_call = time - self._last_call_time
        since_invoke = time - self._last_invoke_time
        # trailing edge reached, clock went backwards (new cycle), or max_wait hit
        return (since_call >= self.wait or since_call < 0
                or (self.maxing and since_invoke >= self.max_wait))

    def _remaining_wait(self, time: float) -> float:
        waiting = self.wait - (time - self._last_call_time)
        if self.maxing:
            return min(waiting, self.max_wait - (time - self._last_invoke_time))
        return waiting

    def _start_timer(self, wait: float) -> None:
        if self._timer is not None:
            self._scheduling.stop(self._timer)
        self._timer = self._scheduling.start(self._timer_expired, wait)

    def _timer_expired(self) -> Any:
        time = self.host.now()
        if self._should_invoke(time):
            return self._trailing_edge(time)
        # woken early, or activity continued: sleep for whatever is left
        self._timer = None
        self._start_timer(self._remaining_wait(time))
        return None

    def _leading_edge(self, time: float) -> Any:
        self._last_invoke_time = time
        self._start_timer(self.wait)
        return self._invoke(time) if self.leading else self.result

    def _trailing_edge(self, time: float) -> Any:
        self._timer = None
        # only when called since the last execution; a leading-only cycle has no args left
        if self.trailing and self._last_args is not None:
            return self._invoke(time)
        self._last_args = None
        self._last_context = _NO_CONTEXT
        return self.result

    def _invoke(self, time: float) -> Any:
        args, kwargs = self._last_args
        context = self._last_context
        # cleared before the call: a failing func must not be retried next cycle
        self._last_args = None
        self._last_context = _NO_CONTEXT
        self._last_invoke_time = time
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s: invoking at %.1f ms", self._name, time)
        if context is _NO_CONTEXT:
            self.result = self.func(*args, **kwargs)
        else:
            self.result = self.func(context, *args, **kwargs)
        return self.result


def debounce(func: Callable[..., Any], wait: Optional[float] = None,
             options: Any = None, *, host: Optional[SchedulingHost] = None) -> DebouncedInvoker:
    """Create a DebouncedInvoker for ``func``. See DebouncedInvoker for the arguments."""
    return DebouncedInvoker(func, wait, options, host=host)


def debounced(wait: Optional[float] = None, options: Any = None, *,
              host: Optional[SchedulingHost] = None) -> Callable[[Callable[..., Any]], DebouncedInvoker]:
    """Decorator form of :func:`debounce`.

        @debounced(200, {"maxWait": 1000})
        def refresh(query): ...
    """
    def decorator(func: Callable[..., Any]) -> DebouncedInvoker:
        return DebouncedInvoker(func, wait, options, host=host)
    return decorator
