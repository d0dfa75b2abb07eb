# src/dbs/utils/numbers.py
import math
from typing import Any, Optional


def safe_float(s: Any, default: Optional[float] = None) -> Optional[float]:
    try:
        if s is None: return default
        if isinstance(s, (int, float)): return float(s)
        return float(str(s).replace(",", ".").strip())
    except Exception:
        return default

def safe_int(s: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        if s is None: return default
        return int(str(s).strip())
    except Exception:
        return default

def to_ms(value: Any, default: float = 0.0) -> float:
    """Permissive duration coercion: anything non-numeric (or NaN) becomes ``default``."""
    v = safe_float(value, None)
    if v is None or math.isnan(v):
        return default
    return v

def coerce_wait(value: Any) -> float:
    """Coerce a ``wait`` argument to milliseconds.

    Non-numeric input falls back to 0. Negative or infinite waits are rejected,
    a timer cannot be armed with either.
    """
    wait = to_ms(value, 0.0)
    if wait < 0 or math.isinf(wait):
        raise ValueError(f"wait must be a finite, non-negative number of ms, got {value!r}")
    return wait

def format_ms(value: Optional[float], empty: str = "—") -> str:
    if value is None: return empty
    if value == int(value): return f"{int(value)} ms"
    return f"{value:.1f} ms"
