# src/dbs/data/simulator.py
import pandas as pd
from typing import Optional
from .provider import TriggerSource
import random
import logging
from typing import Any, Dict, List

from dbs.host.virtual import VirtualHost
from dbs.utils.debounce import debounce
from dbs.utils.throttle import throttle

logger = logging.getLogger("DebounceScheduler")

TRIGGER_COLS = ["t_ms", "burst", "arg"]
EXEC_COLS = ["t_ms", "arg", "trigger_ms", "lag_ms"]


def simulate_bursts(n_bursts: int = 5, per_burst: int = 8, spacing_ms: float = 30.0,
                    gap_ms: float = 400.0, jitter_ms: float = 0.0,
                    seed: Optional[int] = None) -> pd.DataFrame:
    """
    Bursty trigger stream: ``per_burst`` calls ``spacing_ms`` apart, bursts separated
    by ``gap_ms`` of silence. ``jitter_ms`` adds uniform noise to every spacing.
    Columns: t_ms, burst, arg (running call number, starts at 0).
    """
    rng = random.Random(seed)
    rows: List[Dict[str, Any]] = []
    try:
        t = 0.0
        arg = 0
        for b in range(max(1, int(n_bursts))):
            for i in range(max(1, int(per_burst))):
                if i > 0:
                    t += max(0.0, spacing_ms + rng.uniform(-jitter_ms, jitter_ms))
                rows.append({"t_ms": round(t, 3), "burst": b, "arg": arg})
                arg += 1
            t += max(0.0, gap_ms + rng.uniform(-jitter_ms, jitter_ms))
        return pd.DataFrame(rows, columns=TRIGGER_COLS)
    except Exception:
        logger.exception("simulate_bursts failed")
        return pd.DataFrame(columns=TRIGGER_COLS)


def replay(triggers: pd.DataFrame, wait: Optional[float] = None, options: Any = None,
           frame_ms: Optional[float] = None, throttled: bool = False) -> pd.DataFrame:
    """
    Feed ``triggers`` (sorted by t_ms) into a fresh invoker on a virtual clock and
    record every execution. Pending timers are drained after the last trigger.
    ``lag_ms`` is the delay between the call whose argument was used and the execution.
    """
    host = VirtualHost(frame_ms=frame_ms)
    execs: List[Dict[str, Any]] = []
    call_time: Dict[Any, float] = {}

    def record(arg):
        t = host.now()
        execs.append({"t_ms": t, "arg": arg, "trigger_ms": call_time.get(arg), "lag_ms": t - call_time.get(arg, t)})
        return arg

    make = throttle if throttled else debounce
    invoker = make(record, wait, options, host=host)
    if triggers is None or triggers.empty:
        return pd.DataFrame(columns=EXEC_COLS)

    df = triggers.sort_values("t_ms", kind="stable")
    for t, arg in zip(df["t_ms"].astype(float), df["arg"]):
        host.advance_to(t)
        call_time[arg] = t
        invoker(arg)
    host.run_until_idle()
    logger.debug("replay: %d triggers -> %d executions", len(df), len(execs))
    return pd.DataFrame(execs, columns=EXEC_COLS)


def summarize(triggers: pd.DataFrame, executions: pd.DataFrame) -> Dict[str, Any]:
    """Headline numbers for a replay: counts, coalescing ratio, largest gap between executions, mean lag."""
    n_trig = 0 if triggers is None else int(len(triggers))
    n_exec = 0 if executions is None else int(len(executions))
    out: Dict[str, Any] = {
        "triggers": n_trig,
        "executions": n_exec,
        "coalescing_ratio": (n_trig / n_exec) if n_exec else None,
        "max_gap_ms": None,
        "mean_lag_ms": None,
    }
    if n_exec:
        t = pd.to_numeric(executions["t_ms"], errors="coerce").sort_values()
        gaps = t.diff().dropna()
        out["max_gap_ms"] = float(gaps.max()) if not gaps.empty else None
        out["mean_lag_ms"] = float(pd.to_numeric(executions["lag_ms"], errors="coerce").mean())
    return out


class SimulatedBursts(TriggerSource):
    def __init__(self, n_bursts: int = 5, per_burst: int = 8, spacing_ms: float = 30.0,
                 gap_ms: float = 400.0, jitter_ms: float = 0.0, seed: Optional[int] = None):
        self.params = dict(n_bursts=n_bursts, per_burst=per_burst, spacing_ms=spacing_ms,
                           gap_ms=gap_ms, jitter_ms=jitter_ms)
        self.seed = seed
    def fetch(self) -> pd.DataFrame:
        return simulate_bursts(**self.params, seed=self.seed)
