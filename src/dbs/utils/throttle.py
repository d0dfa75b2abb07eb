# src/dbs/utils/throttle.py
from typing import Any, Callable, Mapping, Optional

from dbs.host.provider import SchedulingHost
from dbs.utils.debounce import DebouncedInvoker
from dbs.utils.options import DebounceOptions


def throttle(func: Callable[..., Any], wait: Optional[float] = None,
             options: Any = None, *, host: Optional[SchedulingHost] = None) -> DebouncedInvoker:
    """Run ``func`` at most once every ``wait`` ms.

    A throttle is a debounce whose ``max_wait`` equals ``wait``: the first call
    runs immediately (``leading=True``) and the last call of each window runs
    at its end (``trailing=True``). Either edge can be turned off through
    ``options``; ``maxWait`` in ``options`` is ignored.

    With ``wait`` omitted on a host that has frames, ``func`` runs on the first
    call of a burst and then at most once per frame while the burst goes on,
    with the latest arguments.
    """
    leading, trailing = True, True
    if isinstance(options, DebounceOptions):
        leading, trailing = options.leading, options.trailing
    elif isinstance(options, Mapping):
        leading = bool(options["leading"]) if "leading" in options else leading
        trailing = bool(options["trailing"]) if "trailing" in options else trailing
    return DebouncedInvoker(func, wait, {"leading": leading, "trailing": trailing, "maxWait": wait},
                            host=host)


def throttled(wait: Optional[float] = None, options: Any = None, *,
              host: Optional[SchedulingHost] = None) -> Callable[[Callable[..., Any]], DebouncedInvoker]:
    def decorator(func: Callable[..., Any]) -> DebouncedInvoker:
        return throttle(func, wait, options, host=host)
    return decorator
