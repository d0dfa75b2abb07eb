# src/dbs/utils/options.py
import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from dbs.utils.numbers import safe_float, to_ms

logger = logging.getLogger("DebounceScheduler")

MAX_WAIT_KEYS = ("maxWait", "max_wait")


@dataclass(frozen=True)
class DebounceOptions:
    """Edge policy of one invoker. ``max_wait=None`` disables maxing."""
    leading: bool = False
    trailing: bool = True
    max_wait: Optional[float] = None

    @property
    def maxing(self) -> bool:
        return self.max_wait is not None


def parse_options(options: Any, wait: float) -> DebounceOptions:
    """Normalize user options into a DebounceOptions.

    Mappings follow the permissive rules of the callable API: the mere presence
    of a ``maxWait``/``max_wait`` key turns maxing on, whatever its value, and
    ``max_wait`` is never allowed below ``wait``. Anything that is neither a
    mapping nor a DebounceOptions is ignored.
    """
    if isinstance(options, DebounceOptions):
        if options.max_wait is None:
            return options
        return replace(options, max_wait=max(to_ms(options.max_wait, 0.0), wait))

    if not isinstance(options, Mapping):
        return DebounceOptions()

    leading = bool(options.get("leading", False))
    trailing = bool(options["trailing"]) if "trailing" in options else True
    max_wait = None
    for key in MAX_WAIT_KEYS:
        if key in options:
            max_wait = max(to_ms(options[key], 0.0), wait)
            break
    return DebounceOptions(leading=leading, trailing=trailing, max_wait=max_wait)


# ================= SETTINGS (JSON) =================
def default_settings() -> Dict[str, Any]:
    return {
        "wait_ms": 250,
        "max_wait_ms": None,
        "leading": False,
        "trailing": True,
    }

def default_settings_path() -> str:
    env = os.getenv("DBS_SETTINGS")
    if env:
        return env
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "ui", "settings.json")

def load_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """Read settings JSON, merged over defaults. Missing file -> defaults."""
    path = path or default_settings_path()
    if not os.path.isfile(path):
        return default_settings()
    with open(path, "r", encoding="utf-8") as f:
        s = json.load(f)
    if not isinstance(s, dict):
        raise ValueError("Settings JSON must contain an object at top-level.")
    logger.info("Settings loaded from %s", path)
    return {**default_settings(), **s}

def save_settings(path: str, s: Mapping[str, Any]) -> None:
    data = {**default_settings(), **dict(s)}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    logger.info("Settings saved to %s", path)

def options_from_settings(s: Mapping[str, Any]) -> Tuple[float, Dict[str, Any]]:
    """Translate a settings dict into ``(wait, options)`` for debounce()."""
    wait = to_ms(s.get("wait_ms"), 0.0)
    opts: Dict[str, Any] = {
        "leading": bool(s.get("leading", False)),
        "trailing": bool(s.get("trailing", True)),
    }
    max_wait = safe_float(s.get("max_wait_ms"), None)
    if max_wait is not None:
        opts["maxWait"] = max_wait
    return wait, opts
